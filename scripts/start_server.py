#!/usr/bin/env python3
import os
import sys
import subprocess
from dotenv import load_dotenv


def main():
    load_dotenv()

    project_dir = os.getcwd()
    print(f"Current directory: {project_dir}")

    # Get configuration from environment variables
    host = os.getenv('HOST', '127.0.0.1')
    port = os.getenv('PORT', '8000')

    if not os.path.exists("nexus"):
        print("'nexus' package not found! Run this from the project root.")
        sys.exit(1)

    cmd = [sys.executable, "-m", "uvicorn", "nexus.main:app", "--reload", "--host", host, "--port", port]

    print(f"Running command: {' '.join(cmd)}")
    print(f"Server will be available at: http://localhost:{port}")
    print("Press Ctrl+C to stop the server")
    print("Make sure DynamoDB Local is running and tables exist: python scripts/init_dynamodb.py")

    try:
        subprocess.run(cmd)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
