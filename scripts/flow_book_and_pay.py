#!/usr/bin/env python3
"""
Complete booking and payment flow against a running server.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py
    python scripts/flow_book_and_pay.py --base-url http://localhost:8000 --rate 150 --duration 2

Flow:
    1. Sign up (or log in) a developer and a customer
    2. Set the developer's hourly rate and wallet
    3. Customer books a session tomorrow
    4. Developer marks the call completed
    5. Customer confirms payment with a transaction hash
"""

import argparse
import json
import sys
from datetime import date, timedelta

import httpx

DEVELOPER_EMAIL = "developer@devcall.dev"
CUSTOMER_EMAIL = "customer@devcall.dev"
PASSWORD = "Test1234pass"


def authenticate(base_url: str, email: str, role: str, full_name: str) -> str:
    """Sign up, falling back to login for an existing account."""
    response = httpx.post(
        f"{base_url}/api/v1/auth/signup",
        json={"email": email, "password": PASSWORD, "role": role, "full_name": full_name},
        timeout=10.0,
    )
    if response.status_code == 409:
        response = httpx.post(
            f"{base_url}/api/v1/auth/login",
            json={"email": email, "password": PASSWORD},
            timeout=10.0,
        )
    if response.status_code not in (200, 201):
        print(f"ERROR: authentication failed for {email}: {response.status_code}")
        print(response.text)
        sys.exit(1)
    return response.json()["access_token"]


def api_request(base_url: str, token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    response = httpx.request(
        method,
        f"{base_url}{endpoint}",
        headers={"Authorization": f"Bearer {token}"},
        json=data,
        timeout=30.0,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def expect(result: dict, status: int) -> dict:
    print(json.dumps(result["data"], indent=2, default=str))
    if result["status"] != status:
        print(f"ERROR: expected {status}, got {result['status']}")
        sys.exit(1)
    return result["data"]


def main():
    parser = argparse.ArgumentParser(description="Book and pay for a DevCall session")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--rate", default="150.00", help="Developer hourly rate")
    parser.add_argument("--duration", default="2", help="Session length in hours")
    args = parser.parse_args()
    base = args.base_url

    print_step(1, "Authenticate developer and customer")
    developer_token = authenticate(base, DEVELOPER_EMAIL, "developer", "Dana Developer")
    customer_token = authenticate(base, CUSTOMER_EMAIL, "customer", "Casey Customer")
    developer = expect(api_request(base, developer_token, "GET", "/api/v1/auth/me"), 200)

    print_step(2, "Set developer rate and wallet")
    expect(
        api_request(
            base,
            developer_token,
            "PATCH",
            "/api/v1/developers/me",
            {"hourly_rate": args.rate, "wallet_address": "0xdeveloperwallet", "is_available": True},
        ),
        200,
    )

    print_step(3, "Create booking")
    booking = expect(
        api_request(
            base,
            customer_token,
            "POST",
            "/api/v1/bookings",
            {
                "developer_id": developer["id"],
                "booking_date": (date.today() + timedelta(days=1)).isoformat(),
                "hour": 2,
                "minute": 30,
                "period": "PM",
                "duration": args.duration,
                "project_details": {
                    "title": "API review",
                    "description": "Review our REST API design",
                    "requirements": "OpenAPI spec",
                    "goals": "A list of concrete fixes",
                    "meet_link": "https://meet.example.com/abc-defg-hij",
                },
            },
        ),
        201,
    )
    booking_id = booking["id"]

    print_step(4, "Developer marks the call completed")
    expect(
        api_request(
            base,
            developer_token,
            "POST",
            f"/api/v1/bookings/{booking_id}/call-outcome",
            {"outcome": "completed"},
        ),
        200,
    )

    print_step(5, "Customer confirms payment")
    paid = expect(
        api_request(
            base,
            customer_token,
            "POST",
            f"/api/v1/bookings/{booking_id}/confirm-payment",
            {"transaction_hash": "0xabc"},
        ),
        200,
    )

    print(f"\nDone: status={paid['status']} payment_status={paid['payment_status']} amount={paid['amount']}")


if __name__ == "__main__":
    main()
