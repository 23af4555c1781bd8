#!/usr/bin/env python3
"""
Seed demo users and profiles for Nexus.

Wipes every table, then creates two startups, two investors and one admin.
All accounts use the password "password123".

Usage:
    python scripts/seed_data.py
"""
import os
import sys

# Load environment BEFORE any app imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from dotenv import load_dotenv
load_dotenv()

from werkzeug.security import generate_password_hash

from nexus.adapters.dynamodb import ALL_MODELS, Investor, Startup, User

DEMO_PASSWORD = "password123"

USERS = [
    {"username": "startup1", "email": "s1@test.com", "role": "startup"},
    {"username": "investor1", "email": "i1@test.com", "role": "investor"},
    {"username": "startup2", "email": "s2@test.com", "role": "startup"},
    {"username": "investor2", "email": "i2@test.com", "role": "investor"},
    {"username": "admin", "email": "admin@test.com", "role": "admin"},
]

STARTUPS = {
    "startup1": {
        "startup_name": "TechNova",
        "industry": "Technology",
        "stage": "Seed",
        "funding_required": 500000,
        "equity_offered": 10,
        "location": "Bangalore",
        "revenue_status": "Pre-Revenue",
        "team_size": 5,
        "pitch_description": "AI-driven matchmaking for jobs.",
        "tags": ["AI", "Recruitment", "SaaS"],
    },
    "startup2": {
        "startup_name": "GreenEarth",
        "industry": "CleanTech",
        "stage": "Pre-Seed",
        "funding_required": 100000,
        "equity_offered": 15,
        "location": "Delhi",
        "revenue_status": "Pre-Revenue",
        "team_size": 2,
        "pitch_description": "Sustainable packaging solutions.",
        "tags": ["Environment", "Sustainability", "Plastic-Free"],
    },
}

INVESTORS = {
    "investor1": {
        "investor_name": "VentureCapital One",
        "firm_name": "VC One",
        "preferred_industries": ["Technology", "SaaS"],
        "preferred_stages": ["Seed"],
        "investment_type": "Equity",
        "min_investment": 200000,
        "max_investment": 1000000,
        "location_preference": "Bangalore",
        "bio": "Looking for high-growth tech startups.",
    },
    "investor2": {
        "investor_name": "Angel Investor Bob",
        "firm_name": "Bob Angels",
        "preferred_industries": ["CleanTech", "Healthcare"],
        "preferred_stages": ["Pre-Seed"],
        "investment_type": "Convertible Note",
        "min_investment": 50000,
        "max_investment": 200000,
        "location_preference": "Any",
        "bio": "Investing in sustainable future.",
    },
}


def clear_tables():
    """Delete every item in every table."""
    for model in ALL_MODELS:
        count = 0
        with model.batch_write() as batch:
            for item in model.scan():
                batch.delete(item)
                count += 1
        print(f"  Cleared {count} items from {model.Meta.table_name}")


def seed():
    for data in USERS:
        user = User.create_user(
            username=data["username"],
            email=data["email"],
            role=data["role"],
            password_hash=generate_password_hash(DEMO_PASSWORD),
        )
        user.has_filled_profile = data["role"] != "admin"
        user.save()

        if data["username"] in STARTUPS:
            Startup(user_id=user.user_id, **STARTUPS[data["username"]]).save()
        elif data["username"] in INVESTORS:
            Investor(user_id=user.user_id, **INVESTORS[data["username"]]).save()

        print(f"  [OK] {data['role']:<8} {data['username']} ({data['email']})")


def main():
    print("=" * 60)
    print("SEEDING DEMO DATA")
    print("=" * 60)

    print("\nClearing existing data...")
    clear_tables()

    print("\nCreating users and profiles...")
    seed()

    print(f"\nSeeding completed. Log in with any username above and password '{DEMO_PASSWORD}'.")


if __name__ == "__main__":
    main()
