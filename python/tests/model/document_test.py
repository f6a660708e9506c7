"""Tests for the project document model."""

from __future__ import annotations

import pytest
from openfolio.errors import CorruptProjectError
from openfolio.model.document import (
    CURRENT_PROJECT_VERSION,
    ProjectDocument,
    ProjectSettings,
    Security,
    create_empty_project,
)


class TestSecurity:
    """Tests for security wire conversion."""

    def test_unknown_keys_are_preserved(self):
        data = {
            "isin": "US0378331005",
            "name": "Apple Inc.",
            "currency": "USD",
            "trailingPE": 31.2,
            "dividendHistory": [{"date": "2024-05-16", "amount": 0.25}],
        }
        security = Security.from_dict(data)
        assert security.extra == {
            "trailingPE": 31.2,
            "dividendHistory": [{"date": "2024-05-16", "amount": 0.25}],
        }
        assert security.to_dict() == data

    def test_missing_and_empty_history_are_equivalent(self):
        missing = Security.from_dict({"isin": "X1", "name": "X"})
        empty = Security.from_dict({"isin": "X1", "name": "X", "priceHistory": {}})
        assert missing == empty
        assert "priceHistory" not in empty.to_dict()

    def test_isin_falls_back_to_map_key(self):
        security = Security.from_dict({"name": "SAP"}, isin="DE0007164600")
        assert security.isin == "DE0007164600"
        assert security.currency == "EUR"

    def test_non_object_raises(self):
        with pytest.raises(CorruptProjectError, match="security"):
            Security.from_dict(["not", "a", "dict"])


class TestProjectSettings:
    """Tests for settings wire conversion."""

    def test_defaults(self):
        settings = ProjectSettings.from_dict(None)
        assert settings.base_currency == "EUR"
        assert settings.to_dict() == {"baseCurrency": "EUR"}

    def test_round_trip_with_extra(self):
        data = {"baseCurrency": "CHF", "taxRate": 0.26375, "theme": "dark"}
        assert ProjectSettings.from_dict(data).to_dict() == data


class TestProjectDocument:
    """Tests for whole-document conversion."""

    def test_round_trip(self, sample_document):
        assert ProjectDocument.from_dict(sample_document.to_dict()) == sample_document

    def test_camel_case_keys(self, sample_document):
        data = sample_document.to_dict()
        assert {"cashAccounts", "cashMovements", "fxData"} <= data.keys()
        assert data["fxData"]["baseCurrency"] == "EUR"
        assert data["fxData"]["lastUpdated"] == "2024-01-16"

    def test_defaults_for_missing_fields(self):
        document = ProjectDocument.from_dict({"version": 1, "transactions": []})
        assert document.name == "My Portfolio"
        assert document.id
        assert document.securities == {}
        assert document.fx_data.rates == {}

    def test_invalid_version_raises(self):
        with pytest.raises(CorruptProjectError, match="version"):
            ProjectDocument.from_dict({"version": "one", "transactions": []})

    def test_wrong_collection_type_raises(self):
        with pytest.raises(CorruptProjectError, match="transactions"):
            ProjectDocument.from_dict({"version": 1, "transactions": {}})


class TestCreateEmptyProject:
    """Tests for fresh projects."""

    def test_fresh_project(self):
        project = create_empty_project("Test")
        assert project.name == "Test"
        assert project.version == CURRENT_PROJECT_VERSION
        assert project.created == project.modified
        assert project.transactions == []
        assert project.fx_data.base_currency == "EUR"

    def test_ids_are_unique(self):
        assert create_empty_project().id != create_empty_project().id

    def test_touched_updates_modified(self):
        project = create_empty_project()
        project.modified = "2020-01-01T00:00:00+00:00"
        touched = project.touched()
        assert touched.modified > project.modified
        assert touched.created == project.created
