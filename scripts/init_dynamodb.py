#!/usr/bin/env python
"""
Initialize DynamoDB tables for Nexus.
Run this after LocalStack / DynamoDB Local starts to ensure tables exist.

Usage:
    python scripts/init_dynamodb.py
"""
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from dotenv import load_dotenv

load_dotenv(override=True)

from pynamodb.exceptions import PynamoDBException

from nexus.adapters.dynamodb import ALL_MODELS, HOST, REGION


def create_table_if_not_exists(model) -> bool:
    """Create the model's table (and its GSIs) if it doesn't exist."""
    table_name = model.Meta.table_name
    try:
        if model.exists():
            print(f"  [OK] {table_name} already exists")
            return True
        model.create_table(wait=True)
        print(f"  [OK] Created {table_name}")
        return True
    except PynamoDBException as e:
        print(f"  [FAIL] Error creating {table_name}: {e}")
        return False


def main():
    print("=" * 60)
    print("DYNAMODB TABLE INITIALIZATION")
    print("=" * 60)
    print(f"Endpoint: {HOST or 'AWS'} ({REGION})")
    print("\nCreating tables...")

    success = 0
    for model in ALL_MODELS:
        if create_table_if_not_exists(model):
            success += 1

    print(f"\nResult: {success}/{len(ALL_MODELS)} tables ready")
    return success == len(ALL_MODELS)


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
