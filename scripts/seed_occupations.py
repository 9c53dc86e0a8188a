from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def _bootstrap_import_path() -> None:
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_bootstrap_import_path()

from pydantic import ValidationError  # noqa: E402

from skillgap.config import build_sqlalchemy_db_url, settings  # noqa: E402
from skillgap.database import Base, SessionLocal, engine, mask_db_url  # noqa: E402
from skillgap.errors import SkillGapError  # noqa: E402
from skillgap.schemas.occupation import OccupationSkills  # noqa: E402
from skillgap.services.occupation_provider import OnetOccupationProvider  # noqa: E402
import skillgap.models  # noqa: F401,E402  # ensure all models are registered


def _load_file(path: Path) -> list[OccupationSkills]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    items = raw if isinstance(raw, list) else [raw]
    return [OccupationSkills.model_validate(item) for item in items]


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Warm the occupation_cache table, either from O*NET web services "
            "(ONET_API_USERNAME / ONET_API_PASSWORD) or from a JSON file of occupations."
        )
    )
    parser.add_argument("codes", nargs="*", help="O*NET-SOC codes to fetch, e.g. 15-1252.00")
    parser.add_argument("--file", type=Path, default=None, help="JSON file with one occupation or a list of them")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create ORM tables first (always done for sqlite).",
    )
    args = parser.parse_args(argv)

    if not args.codes and not args.file:
        parser.error("pass at least one occupation code or --file")

    db_url = build_sqlalchemy_db_url(settings)
    print("seeding occupation cache on:", mask_db_url(db_url))
    if args.create_tables or db_url.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    provider = OnetOccupationProvider(
        base_url=settings.onet_api_base,
        username=settings.onet_api_username,
        password=settings.onet_api_password,
        data_version=settings.onet_data_version,
        cache_ttl_days=settings.onet_cache_ttl_days,
        timeout=settings.onet_request_timeout_seconds,
    )
    if args.codes and not provider.configured:
        print("O*NET credentials are not configured; cannot fetch codes.")
        return 2

    failures = 0
    with SessionLocal() as db:
        if args.file:
            try:
                occupations = _load_file(args.file)
            except (OSError, ValueError, ValidationError) as exc:
                print(f"could not read {args.file}: {exc}")
                return 2
            for occupation in occupations:
                provider.cache_occupation(db, occupation)
                print(f"cached {occupation.occupation_code} {occupation.occupation_title} ({len(occupation.skills)} skills)")

        for code in args.codes:
            try:
                occupation = provider.fetch_occupation(code)
            except SkillGapError as exc:
                print(f"failed {code}: {exc}")
                failures += 1
                continue
            provider.cache_occupation(db, occupation)
            print(f"cached {code} {occupation.occupation_title} ({len(occupation.skills)} skills)")

    print("done" if not failures else f"done with {failures} failure(s)")
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
