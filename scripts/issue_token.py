"""Issue a development bearer token for a user id."""

from __future__ import annotations

import argparse
import os
from datetime import timedelta

from src.contentgen.auth.auth_service import AuthService


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id")
    parser.add_argument("--organization-id")
    parser.add_argument("--project-id")
    parser.add_argument("--ttl-hours", type=int, default=24 * 7)
    args = parser.parse_args()

    service = AuthService(
        signing_key=os.getenv("JWT_SIGNING_KEY", ""),
        token_ttl=timedelta(hours=args.ttl_hours),
    )
    print(
        service.issue_token(
            args.user_id,
            organization_id=args.organization_id,
            project_id=args.project_id,
        )
    )


if __name__ == "__main__":
    main()
