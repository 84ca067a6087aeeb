"""
Tests for component wiring and settings.
"""

from decimal import Decimal

import pytest

from pocket_ledger.config import LedgerSettings, validate_all_settings
from pocket_ledger.ledger import AccountManager, LedgerEngine
from pocket_ledger.orchestrator import create_app_components
from pocket_ledger.reports import StatsReporter
from pocket_ledger.services.storage import InMemoryRecordStore


@pytest.fixture
def bare_environment(monkeypatch):
    """No external services configured."""
    for name in (
        "CLOUDINARY_CLOUD_NAME",
        "CLOUDINARY_API_KEY",
        "CLOUDINARY_API_SECRET",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "STORAGE_BACKEND",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestCreateAppComponents:
    """Tests for create_app_components."""

    def test_defaults_to_memory_without_hosting(self, bare_environment):
        engine, manager, reporter, sheets_client = create_app_components()

        assert isinstance(engine, LedgerEngine)
        assert isinstance(manager, AccountManager)
        assert isinstance(reporter, StatsReporter)
        assert sheets_client is None

    def test_unconfigured_sheets_falls_back_to_memory(self, bare_environment):
        bare_environment.setenv("STORAGE_BACKEND", "google_sheets")

        _, _, _, sheets_client = create_app_components(use_image_hosting=False)

        assert sheets_client is None

    @pytest.mark.asyncio
    async def test_components_share_one_store(self, bare_environment):
        store = InMemoryRecordStore()
        engine, manager, reporter, _ = create_app_components(store=store, use_image_hosting=False)

        opened = await manager.open_account("Cash", user_id="u1")
        await engine.record({
            "type": "income",
            "amount": "25",
            "account_id": opened.data.id,
            "user_id": "u1",
        })

        account = (await manager.get_account(opened.data.id)).data
        report = (await reporter.yearly("u1")).data
        assert account.amount == Decimal("25")
        assert report.total_income == Decimal("25")


class TestSettings:
    """Tests for settings loading."""

    def test_ledger_defaults(self, bare_environment):
        settings = LedgerSettings()

        assert settings.max_conflict_retries == 5
        assert settings.receipt_folder == "transactions"
        assert settings.account_image_folder == "accounts"
        assert "png" in settings.supported_formats_list

    def test_ledger_settings_from_environment(self, bare_environment):
        bare_environment.setenv("LEDGER_MAX_CONFLICT_RETRIES", "9")
        bare_environment.setenv("LEDGER_COMPENSATE_ON_FAILURE", "false")

        settings = LedgerSettings()

        assert settings.max_conflict_retries == 9
        assert settings.compensate_on_failure is False

    def test_validate_all_settings_reports_missing_sections(self, bare_environment):
        results = validate_all_settings()

        assert results["ledger"] is True
        assert results["app"] is True
        assert results["cloudinary"] is False
        assert "cloudinary_error" in results
