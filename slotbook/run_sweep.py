"""Run one expiry sweep against DATABASE_URL and print what was removed.

Usage:
    python -m slotbook.run_sweep
"""
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from slotbook.database import SessionLocal
from slotbook.models import appointment, consultation_type, professional, slot  # noqa: F401
from slotbook.scheduling.clock import get_clock
from slotbook.scheduling.sweeper import run_expiry_sweep


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        result = run_expiry_sweep(db, get_clock())
    except SQLAlchemyError as exc:
        print("Expiry sweep failed:", exc, file=sys.stderr)
        sys.exit(1)
    finally:
        db.close()

    print(f"slots_deleted={result.slots_deleted} appointments_deleted={result.appointments_deleted}")


if __name__ == "__main__":
    main()
