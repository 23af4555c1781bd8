"""DynamoDB adapter for user, profile, connection and match persistence."""
import logging
import os
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional, List

from dotenv import load_dotenv
from pynamodb.attributes import (
    BooleanAttribute,
    ListAttribute,
    MapAttribute,
    NumberAttribute,
    UnicodeAttribute,
    UTCDateTimeAttribute,
)
from pynamodb.exceptions import DoesNotExist
from pynamodb.indexes import GlobalSecondaryIndex, AllProjection
from pynamodb.models import Model

load_dotenv()

logger = logging.getLogger(__name__)

# Support both AWS_DEFAULT_REGION and AWS_REGION (fallback)
REGION = os.getenv('AWS_DEFAULT_REGION') or os.getenv('AWS_REGION', 'us-east-1')
# Only set host for local development (LocalStack / DynamoDB Local)
HOST = os.getenv('DYNAMODB_ENDPOINT_URL') or os.getenv('AWS_ENDPOINT_URL')

ROLES = ("startup", "investor", "admin")
MATCH_STATUSES = ("Recommended", "Requested", "Connected", "Rejected")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class TimestampMixin:
    """Maintain created_at/updated_at on every save."""

    def save(self, *args, **kwargs):
        now = utcnow()
        if getattr(self, 'created_at', None) is None:
            self.created_at = now
        self.updated_at = now
        return super().save(*args, **kwargs)


class EmailIndex(GlobalSecondaryIndex):
    """Lookup users by email."""

    class Meta:
        index_name = 'email-index'
        projection = AllProjection()

    email = UnicodeAttribute(hash_key=True)


class UsernameIndex(GlobalSecondaryIndex):
    """Lookup users by username."""

    class Meta:
        index_name = 'username-index'
        projection = AllProjection()

    username = UnicodeAttribute(hash_key=True)


class User(TimestampMixin, Model):
    """PynamoDB model for application users."""

    class Meta:
        table_name = os.getenv('DYNAMO_USERS_TABLE_NAME', 'nexus-users')
        region = REGION
        host = HOST
        billing_mode = 'PAY_PER_REQUEST'
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    user_id = UnicodeAttribute(hash_key=True)
    username = UnicodeAttribute()
    email = UnicodeAttribute()
    role = UnicodeAttribute()
    password_hash = UnicodeAttribute()
    is_verified = BooleanAttribute(default=False)
    has_filled_profile = BooleanAttribute(default=False)
    created_at = UTCDateTimeAttribute(null=True)
    updated_at = UTCDateTimeAttribute(null=True)

    email_index = EmailIndex()
    username_index = UsernameIndex()

    @classmethod
    def create_user(cls, username: str, email: str, role: str, password_hash: str) -> 'User':
        """Build a new (unsaved) user. Email is stored lowercase."""
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        return cls(
            user_id=new_id(),
            username=username,
            email=email.strip().lower(),
            role=role,
            password_hash=password_hash,
            is_verified=False,
            has_filled_profile=False,
        )

    @classmethod
    def find_by_id(cls, user_id: str) -> Optional['User']:
        if not user_id:
            return None
        try:
            return cls.get(user_id)
        except DoesNotExist:
            logger.debug(f"User {user_id} not found")
            return None

    @classmethod
    def find_by_email(cls, email: str) -> Optional['User']:
        if not email:
            return None
        return next(iter(cls.email_index.query(email.strip().lower(), limit=1)), None)

    @classmethod
    def find_by_username(cls, username: str) -> Optional['User']:
        if not username:
            return None
        return next(iter(cls.username_index.query(username, limit=1)), None)

    @classmethod
    def list_all(cls) -> List['User']:
        return list(cls.scan())

    def to_session(self) -> Dict[str, str]:
        """Minimal identity stored in the session cookie."""
        return {"user_id": self.user_id, "username": self.username, "role": self.role}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "is_verified": bool(self.is_verified),
            "has_filled_profile": bool(self.has_filled_profile),
            "created_at": _isoformat(self.created_at),
        }


class Startup(TimestampMixin, Model):
    """Startup pitch profile, one per startup user."""

    class Meta:
        table_name = os.getenv('DYNAMO_STARTUPS_TABLE_NAME', 'nexus-startups')
        region = REGION
        host = HOST
        billing_mode = 'PAY_PER_REQUEST'
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    user_id = UnicodeAttribute(hash_key=True)
    startup_name = UnicodeAttribute()
    industry = UnicodeAttribute()
    stage = UnicodeAttribute()
    funding_required = NumberAttribute()
    equity_offered = NumberAttribute(null=True)
    location = UnicodeAttribute()
    revenue_status = UnicodeAttribute(null=True)
    team_size = NumberAttribute(null=True)
    pitch_description = UnicodeAttribute()
    tags = ListAttribute(of=UnicodeAttribute, default=list)
    created_at = UTCDateTimeAttribute(null=True)
    updated_at = UTCDateTimeAttribute(null=True)

    @classmethod
    def find_by_user(cls, user_id: str) -> Optional['Startup']:
        if not user_id:
            return None
        try:
            return cls.get(user_id)
        except DoesNotExist:
            return None

    @classmethod
    def list_all(cls) -> List['Startup']:
        return list(cls.scan())

    @property
    def display_name(self) -> str:
        return self.startup_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "startup_name": self.startup_name,
            "industry": self.industry,
            "stage": self.stage,
            "funding_required": self.funding_required,
            "equity_offered": self.equity_offered,
            "location": self.location,
            "revenue_status": self.revenue_status,
            "team_size": self.team_size,
            "pitch_description": self.pitch_description,
            "tags": list(self.tags or []),
        }


class Investor(TimestampMixin, Model):
    """Investor preferences profile, one per investor user."""

    class Meta:
        table_name = os.getenv('DYNAMO_INVESTORS_TABLE_NAME', 'nexus-investors')
        region = REGION
        host = HOST
        billing_mode = 'PAY_PER_REQUEST'
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    user_id = UnicodeAttribute(hash_key=True)
    investor_name = UnicodeAttribute(null=True)
    firm_name = UnicodeAttribute()
    preferred_industries = ListAttribute(of=UnicodeAttribute, default=list)
    preferred_stages = ListAttribute(of=UnicodeAttribute, default=list)
    investment_type = UnicodeAttribute(null=True)
    min_investment = NumberAttribute()
    max_investment = NumberAttribute()
    location_preference = UnicodeAttribute(null=True)
    risk_tolerance = UnicodeAttribute(null=True)
    active_mentoring = BooleanAttribute(default=False)
    portfolio_tags = ListAttribute(of=UnicodeAttribute, default=list)
    bio = UnicodeAttribute(null=True)
    created_at = UTCDateTimeAttribute(null=True)
    updated_at = UTCDateTimeAttribute(null=True)

    @classmethod
    def find_by_user(cls, user_id: str) -> Optional['Investor']:
        if not user_id:
            return None
        try:
            return cls.get(user_id)
        except DoesNotExist:
            return None

    @classmethod
    def list_all(cls) -> List['Investor']:
        return list(cls.scan())

    @property
    def display_name(self) -> str:
        return self.investor_name or self.firm_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "investor_name": self.investor_name,
            "firm_name": self.firm_name,
            "preferred_industries": list(self.preferred_industries or []),
            "preferred_stages": list(self.preferred_stages or []),
            "investment_type": self.investment_type,
            "min_investment": self.min_investment,
            "max_investment": self.max_investment,
            "location_preference": self.location_preference,
            "risk_tolerance": self.risk_tolerance,
            "active_mentoring": bool(self.active_mentoring),
            "portfolio_tags": list(self.portfolio_tags or []),
            "bio": self.bio,
        }


class SenderIndex(GlobalSecondaryIndex):
    """Requests sent by a user."""

    class Meta:
        index_name = 'sender-index'
        projection = AllProjection()

    sender_id = UnicodeAttribute(hash_key=True)


class ReceiverIndex(GlobalSecondaryIndex):
    """Requests received by a user."""

    class Meta:
        index_name = 'receiver-index'
        projection = AllProjection()

    receiver_id = UnicodeAttribute(hash_key=True)


class ConnectionRequest(TimestampMixin, Model):
    """Directed introduction request between two users."""

    class Meta:
        table_name = os.getenv('DYNAMO_CONNECTIONS_TABLE_NAME', 'nexus-connection-requests')
        region = REGION
        host = HOST
        billing_mode = 'PAY_PER_REQUEST'
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    request_id = UnicodeAttribute(hash_key=True)
    sender_id = UnicodeAttribute()
    receiver_id = UnicodeAttribute()
    status = UnicodeAttribute(default='pending')
    message = UnicodeAttribute(null=True)
    match_id = UnicodeAttribute(null=True)
    created_at = UTCDateTimeAttribute(null=True)
    updated_at = UTCDateTimeAttribute(null=True)

    sender_index = SenderIndex()
    receiver_index = ReceiverIndex()

    @classmethod
    def create_request(
        cls,
        sender_id: str,
        receiver_id: str,
        message: Optional[str] = None,
        match_id: Optional[str] = None
    ) -> 'ConnectionRequest':
        """Build a new pending request (unsaved)."""
        return cls(
            request_id=new_id(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            status='pending',
            message=message or None,
            match_id=match_id,
        )

    @classmethod
    def find_by_id(cls, request_id: str) -> Optional['ConnectionRequest']:
        if not request_id:
            return None
        try:
            return cls.get(request_id)
        except DoesNotExist:
            return None

    @classmethod
    def list_sent(cls, user_id: str) -> List['ConnectionRequest']:
        return list(cls.sender_index.query(user_id))

    @classmethod
    def list_received(cls, user_id: str) -> List['ConnectionRequest']:
        return list(cls.receiver_index.query(user_id))

    @classmethod
    def find_pending(cls, sender_id: str, receiver_id: str) -> Optional['ConnectionRequest']:
        """Pending request from sender to receiver, if any."""
        for request in cls.sender_index.query(sender_id):
            if request.receiver_id == receiver_id and request.status == 'pending':
                return request
        return None

    @classmethod
    def find_accepted_between(cls, user_id: str, other_id: str) -> Optional['ConnectionRequest']:
        """Accepted request between two users, sent in either direction."""
        for sender_id, receiver_id in ((user_id, other_id), (other_id, user_id)):
            for request in cls.sender_index.query(sender_id):
                if request.receiver_id == receiver_id and request.status == 'accepted':
                    return request
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "sender_id": self.sender_id,
            "receiver_id": self.receiver_id,
            "status": self.status,
            "message": self.message,
            "match_id": self.match_id,
            "created_at": _isoformat(self.created_at),
        }


class AIAnalysis(MapAttribute):
    """Model-generated reasoning for a match."""
    summary = UnicodeAttribute(null=True)
    strengths = ListAttribute(of=UnicodeAttribute, default=list)
    concerns = ListAttribute(of=UnicodeAttribute, default=list)


class Match(TimestampMixin, Model):
    """
    Scored startup/investor pair.
    match_id = "{startup_user_id}_{investor_user_id}" so a pair has one record.
    """

    class Meta:
        table_name = os.getenv('DYNAMO_MATCHES_TABLE_NAME', 'nexus-matches')
        region = REGION
        host = HOST
        billing_mode = 'PAY_PER_REQUEST'
        aws_access_key_id = os.getenv('AWS_ACCESS_KEY_ID')
        aws_secret_access_key = os.getenv('AWS_SECRET_ACCESS_KEY')

    match_id = UnicodeAttribute(hash_key=True)
    startup_id = UnicodeAttribute()
    investor_id = UnicodeAttribute()
    match_score = NumberAttribute()
    structured_score = NumberAttribute(null=True)
    final_score = NumberAttribute(null=True)
    ai_analysis = AIAnalysis(null=True)
    status = UnicodeAttribute(default='Recommended')
    created_at = UTCDateTimeAttribute(null=True)
    updated_at = UTCDateTimeAttribute(null=True)

    @staticmethod
    def generate_match_id(startup_id: str, investor_id: str) -> Optional[str]:
        if not startup_id or not investor_id:
            logger.warning(f"generate_match_id called with invalid IDs: {startup_id}, {investor_id}")
            return None
        return f"{startup_id}_{investor_id}"

    @classmethod
    def find(cls, startup_id: str, investor_id: str) -> Optional['Match']:
        match_id = cls.generate_match_id(startup_id, investor_id)
        if not match_id:
            return None
        try:
            return cls.get(match_id)
        except DoesNotExist:
            return None

    @classmethod
    def upsert_score(
        cls,
        startup_id: str,
        investor_id: str,
        match_score: float,
        structured_score: Optional[float] = None,
        final_score: Optional[float] = None,
        ai_analysis: Optional[Dict[str, Any]] = None,
        clear_analysis: bool = False
    ) -> bool:
        """
        Store the latest scores for a pair, keeping its workflow status.

        clear_analysis drops any earlier AI reasoning, used when the stored
        score is a placeholder.
        """
        match_id = cls.generate_match_id(startup_id, investor_id)
        if not match_id:
            return False
        try:
            match = cls.find(startup_id, investor_id)
            if match is None:
                match = cls(
                    match_id=match_id,
                    startup_id=startup_id,
                    investor_id=investor_id,
                    status="Recommended",
                )
            match.match_score = match_score
            match.structured_score = structured_score
            match.final_score = final_score if final_score is not None else match_score
            if ai_analysis is not None:
                match.ai_analysis = AIAnalysis(
                    summary=ai_analysis.get('summary'),
                    strengths=list(ai_analysis.get('strengths') or []),
                    concerns=list(ai_analysis.get('concerns') or []),
                )
            elif clear_analysis:
                match.ai_analysis = None
            match.save()
            return True
        except Exception as e:
            logger.error(f"Error storing match {match_id}: {e}")
            return False

    @classmethod
    def update_status(cls, match_id: Optional[str], status: str) -> bool:
        """Move a match through its workflow. Unknown ids are ignored."""
        if not match_id:
            return False
        if status not in MATCH_STATUSES:
            raise ValueError(f"Unknown match status: {status}")
        try:
            match = cls.get(match_id)
        except DoesNotExist:
            logger.debug(f"No match {match_id} to update")
            return False
        match.status = status
        match.save()
        logger.info(f"Match {match_id} moved to {status}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_id": self.match_id,
            "startup_id": self.startup_id,
            "investor_id": self.investor_id,
            "match_score": self.match_score,
            "structured_score": self.structured_score,
            "final_score": self.final_score,
            "ai_analysis": self.ai_analysis.as_dict() if self.ai_analysis else None,
            "status": self.status,
        }


ALL_MODELS = (User, Startup, Investor, ConnectionRequest, Match)
