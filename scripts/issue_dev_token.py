from __future__ import annotations

import argparse
import sys
from datetime import timedelta
from pathlib import Path


def _bootstrap_import_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from skillhire.config import build_sqlalchemy_db_url, settings  # noqa: E402
from skillhire.database import Base, SessionLocal, engine  # noqa: E402
from skillhire.models.profile import Profile  # noqa: E402
from skillhire.routers.dependencies import EMPLOYEE, EMPLOYER  # noqa: E402
from skillhire.utils.jwt_handler import create_access_token  # noqa: E402


def _ensure_tables() -> None:
    db_url = build_sqlalchemy_db_url(settings)
    if db_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Create (or reuse) a profile and print a bearer token for it. "
            "For local development only; production tokens come from the auth provider."
        )
    )
    parser.add_argument("--email", required=True, help="Profile email")
    parser.add_argument("--role", choices=[EMPLOYEE, EMPLOYER], default=EMPLOYEE)
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    parser.add_argument("--minutes", type=int, default=settings.access_token_expire_minutes)
    args = parser.parse_args(argv)

    if settings.environment.lower() == "production":
        sys.stderr.write("Refusing to issue development tokens with ENVIRONMENT=production\n")
        return 2

    _ensure_tables()

    with SessionLocal() as db:
        profile = db.query(Profile).filter(Profile.email == args.email).first()
        if profile is None:
            profile = Profile(
                email=args.email,
                role=args.role,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            db.add(profile)
            db.commit()
            db.refresh(profile)
            print(f"created profile id={profile.id} role={profile.role}")
        else:
            print(f"using existing profile id={profile.id} role={profile.role}")
        profile_id = profile.id

    token = create_access_token({"sub": profile_id}, timedelta(minutes=args.minutes))
    print(token)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
