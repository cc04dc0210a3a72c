"""
Tests for settings loading.
"""

import asyncio
import json
from decimal import Decimal

from groupledger.config import (
    EngineSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from groupledger.orchestrator import create_app_components
from groupledger.services.storage import InMemoryDocumentStore


class TestSettings:
    """Tests for the pydantic-settings sections."""

    def test_engine_defaults(self, monkeypatch):
        """Test the engine tolerances default to the documented values."""
        monkeypatch.delenv("LEDGER_SETTLEMENT_TOLERANCE", raising=False)
        settings = EngineSettings()
        assert settings.settlement_tolerance == Decimal("0.01")
        assert settings.zero_sum_tolerance == Decimal("1e-9")
        assert settings.currency_symbol == "₹"

    def test_engine_env_override(self, monkeypatch):
        """Test LEDGER_ variables override the defaults."""
        monkeypatch.setenv("LEDGER_SETTLEMENT_TOLERANCE", "0.5")
        monkeypatch.setenv("LEDGER_CURRENCY_SYMBOL", "$")
        settings = EngineSettings()
        assert settings.settlement_tolerance == Decimal("0.5")
        assert settings.currency_symbol == "$"

    def test_storage_keys(self, monkeypatch):
        """Test the document keys match the stored layout."""
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        settings = StorageSettings()
        assert settings.backend == "memory"
        assert settings.events_key == "group-events"
        assert settings.transactions_key == "personal-expenses"
        assert settings.audit_max_entries == 1000

    def test_audit_cap_applies_to_the_flows(self, monkeypatch):
        """Test STORAGE_AUDIT_MAX_ENTRIES bounds the persisted audit log."""
        monkeypatch.setenv("STORAGE_AUDIT_MAX_ENTRIES", "2")
        store = InMemoryDocumentStore()

        async def scenario():
            flow, _, _ = create_app_components(store)
            for name in ("One", "Two", "Three"):
                await flow.create_event(name, [{"id": "A", "name": "Asha"}])
            return json.loads(await store.get("audit-log"))

        stored = asyncio.run(scenario())
        assert [e["description"] for e in stored] == ["Event created: Two", "Event created: Three"]

    def test_validate_all_settings(self, monkeypatch):
        """Test a bad backend name is reported, not raised."""
        monkeypatch.setenv("STORAGE_BACKEND", "sheets")
        results = validate_all_settings()
        assert results["engine"] is True
        assert results["storage"] is False
        assert "storage_error" in results

    def test_get_settings_is_cached(self):
        """Test the root settings object is shared."""
        assert get_settings() is get_settings()


class TestSettingsInFlows:
    """Tests for settings picked up by the flows."""

    def test_display_settings_shape_the_share_message(self, monkeypatch):
        """Test the currency symbol and decimals come from the environment."""
        monkeypatch.setenv("LEDGER_CURRENCY_SYMBOL", "$")
        monkeypatch.setenv("LEDGER_DISPLAY_DECIMALS", "0")

        async def scenario():
            flow, _, _ = create_app_components(InMemoryDocumentStore(), persist_audit=False)
            event = await flow.create_event("Dinner", [
                {"id": "A", "name": "Asha"},
                {"id": "B", "name": "Bilal"},
            ])
            await flow.add_expense(event.id, {"amount": 60, "paid_by": "A", "split_between": ["A", "B"]})
            return await flow.share_message(event.id)

        assert asyncio.run(scenario()) == (
            "💰 Dinner - Settlement Summary\n\n"
            "Bilal owes Asha $30\n\n"
            "Total: $60"
        )
