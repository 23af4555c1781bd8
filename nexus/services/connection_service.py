"""Connection request workflow: pending -> accepted / rejected, or withdrawn."""
import logging
from typing import Any, Dict, List, Optional

from nexus.adapters.dynamodb import ConnectionRequest, Match, User
from nexus.middleware.auth import SessionUser
from nexus.middleware.error_handling import (
    ConflictException,
    ErrorCode,
    NotFoundException,
    PermissionDenied,
    ValidationException,
)

logger = logging.getLogger(__name__)

CONNECTIONS_URL = "/connections"
MAX_MESSAGE_LENGTH = 1000
MATCH_STATUS_FOR = {"accepted": "Connected", "rejected": "Rejected"}


def _match_id_for(sender: SessionUser, receiver: User) -> Optional[str]:
    if sender.role == "startup":
        return Match.generate_match_id(sender.user_id, receiver.user_id)
    return Match.generate_match_id(receiver.user_id, sender.user_id)


class ConnectionService:
    """Send, answer, withdraw and list connection requests."""

    def send_request(self, sender: SessionUser, receiver_id: str, message: Optional[str] = None) -> ConnectionRequest:
        """
        Send a pending request from a startup to an investor or vice versa.

        The duplicate check is a single read before the write, so two
        concurrent submissions can both pass it.
        """
        if sender.user_id == receiver_id:
            raise ValidationException("You cannot send a connection request to yourself.", redirect_to=CONNECTIONS_URL)

        receiver = User.find_by_id(receiver_id)
        if receiver is None:
            raise NotFoundException("User", receiver_id, code=ErrorCode.USER_NOT_FOUND, redirect_to=CONNECTIONS_URL)

        roles = {sender.role, receiver.role}
        if roles != {"startup", "investor"}:
            raise ConflictException(
                code=ErrorCode.INVALID_RECIPIENT,
                message="Connection requests can only be sent between startups and investors.",
                redirect_to=CONNECTIONS_URL
            )

        message = (message or "").strip()
        if len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationException(
                f"Message must be at most {MAX_MESSAGE_LENGTH} characters.",
                field="message",
                redirect_to=CONNECTIONS_URL
            )

        if ConnectionRequest.find_pending(sender.user_id, receiver_id):
            raise ConflictException(
                code=ErrorCode.REQUEST_ALREADY_PENDING,
                message="You already have a pending request to this user.",
                redirect_to=CONNECTIONS_URL
            )
        if ConnectionRequest.find_accepted_between(sender.user_id, receiver_id):
            raise ConflictException(
                code=ErrorCode.ALREADY_CONNECTED,
                message="You are already connected with this user.",
                redirect_to=CONNECTIONS_URL
            )

        match_id = _match_id_for(sender, receiver)
        request = ConnectionRequest.create_request(
            sender_id=sender.user_id,
            receiver_id=receiver_id,
            message=message or None,
            match_id=match_id,
        )
        request.save()
        Match.update_status(match_id, "Requested")
        logger.info(f"Connection request {request.request_id}: {sender.user_id} -> {receiver_id}")
        return request

    def _load(self, request_id: str) -> ConnectionRequest:
        request = ConnectionRequest.find_by_id(request_id)
        if request is None:
            raise NotFoundException(
                "Connection request", request_id,
                code=ErrorCode.REQUEST_NOT_FOUND, redirect_to=CONNECTIONS_URL
            )
        return request

    @staticmethod
    def _ensure_pending(request: ConnectionRequest) -> None:
        if request.status != "pending":
            raise ConflictException(
                code=ErrorCode.REQUEST_NOT_PENDING,
                message=f"This request has already been {request.status}.",
                redirect_to=CONNECTIONS_URL
            )

    def _respond(self, user: SessionUser, request_id: str, status: str) -> ConnectionRequest:
        request = self._load(request_id)
        if request.receiver_id != user.user_id:
            raise PermissionDenied("Only the recipient can respond to this request.", redirect_to=CONNECTIONS_URL)
        self._ensure_pending(request)

        request.status = status
        request.save()
        Match.update_status(request.match_id, MATCH_STATUS_FOR[status])
        logger.info(f"Connection request {request_id} {status} by {user.user_id}")
        return request

    def accept_request(self, user: SessionUser, request_id: str) -> ConnectionRequest:
        return self._respond(user, request_id, "accepted")

    def reject_request(self, user: SessionUser, request_id: str) -> ConnectionRequest:
        return self._respond(user, request_id, "rejected")

    def withdraw_request(self, user: SessionUser, request_id: str) -> None:
        """Delete a pending request. Only its sender may do this."""
        request = self._load(request_id)
        if request.sender_id != user.user_id:
            raise PermissionDenied("Only the sender can withdraw this request.", redirect_to=CONNECTIONS_URL)
        self._ensure_pending(request)

        request.delete()
        Match.update_status(request.match_id, "Recommended")
        logger.info(f"Connection request {request_id} withdrawn by {user.user_id}")

    def list_for_user(self, user: SessionUser) -> Dict[str, List[Dict[str, Any]]]:
        """Incoming and outgoing requests, newest first, with counterpart names."""
        names: Dict[str, Optional[User]] = {}

        def counterpart(user_id: str) -> Dict[str, Any]:
            if user_id not in names:
                names[user_id] = User.find_by_id(user_id)
            other = names[user_id]
            return {
                "user_id": user_id,
                "username": other.username if other else "Unknown user",
                "role": other.role if other else None,
            }

        def newest_first(requests: List[ConnectionRequest]) -> List[ConnectionRequest]:
            return sorted(
                requests,
                key=lambda r: r.created_at.isoformat() if r.created_at else "",
                reverse=True
            )

        incoming = [
            {**r.to_dict(), "counterpart": counterpart(r.sender_id)}
            for r in newest_first(ConnectionRequest.list_received(user.user_id))
        ]
        outgoing = [
            {**r.to_dict(), "counterpart": counterpart(r.receiver_id)}
            for r in newest_first(ConnectionRequest.list_sent(user.user_id))
        ]
        return {"incoming": incoming, "outgoing": outgoing}

    def pending_counterparts(self, user: SessionUser) -> set:
        """Ids of users this user already has a pending outgoing request to."""
        return {
            r.receiver_id for r in ConnectionRequest.list_sent(user.user_id)
            if r.status == "pending"
        }
