"""Main entry point for the clinic ledger."""

import logging
import sys

from clinic_ledger.config import get_settings


def setup_logging():
    """Configure logging based on settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main():
    """Main entry point - runs CLI."""
    setup_logging()

    from clinic_ledger.cli.commands import app

    app()


async def save_patient_sessions(patient: dict, sessions: list[dict]):
    """Programmatic API for the composite save.

    Example:
        import asyncio
        from clinic_ledger.main import save_patient_sessions

        result = asyncio.run(save_patient_sessions(
            {"full_name": "Ana Ruiz"},
            [{"date": "2026-03-02", "payment": 30, "items": [{"name": "Cleaning", "quantity": 1, "subtotal": 100}]}],
        ))
    """
    from clinic_ledger.core.database import get_session_factory, init_db
    from clinic_ledger.core.schemas import PatientDraft, SessionDraft
    from clinic_ledger.ledger import SessionPersistenceCoordinator

    settings = get_settings()
    await init_db()
    coordinator = SessionPersistenceCoordinator(
        get_session_factory(),
        budget_tolerance=settings.budget_tolerance,
    )
    return await coordinator.save(
        PatientDraft.model_validate(patient),
        [SessionDraft.model_validate(s) for s in sessions],
    )


if __name__ == "__main__":
    main()
