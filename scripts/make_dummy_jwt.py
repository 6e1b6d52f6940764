#!/usr/bin/env python3
import argparse
import os
import sys
from datetime import timedelta

from dotenv import load_dotenv

from jmcc_dashboard.auth import create_access_token

def main():
    parser = argparse.ArgumentParser(description="Generate a dashboard JWT token for testing")
    parser.add_argument("--user", type=str, required=True, help="Username to include in token")
    parser.add_argument("--hours", type=int, default=1, help="Token lifetime in hours")
    args = parser.parse_args()

    load_dotenv()
    if not os.environ.get("JWT_SECRET"):
        print("Error: JWT_SECRET environment variable is required")
        sys.exit(1)

    print(create_access_token(args.user, expires_in=timedelta(hours=args.hours)))

if __name__ == "__main__":
    main()
