# tests/test_schemas.py
import pytest

from tracker.config import SyncConfig
from tracker.schemas import OptionSet, RequestItem, RequestPatch, Vocabulary, STATUSES


def test_request_item_serializes_camel_case():
    item = RequestItem(id="a", patreonName="p", characterName="c", revisionCount=1, daysSinceRequest=3)
    wire = item.to_wire()
    assert wire["patreonName"] == "p"
    assert wire["characterName"] == "c"
    assert wire["daysSinceRequest"] == 3
    assert "dateStarted" not in wire
    assert "daysSinceRequest" not in item.to_wire(include_derived=False)


def test_request_item_accepts_field_names():
    item = RequestItem(id="a", patreon_name="p")
    assert item.patreon_name == "p"


def test_patch_reports_only_sent_fields():
    patch = RequestPatch.model_validate({"status": "Done", "dateStarted": None})
    assert patch.changes() == {"status": "Done", "date_started": None}
    assert patch.to_wire() == {"status": "Done", "dateStarted": None}


def test_option_set_extend_skips_duplicates_and_blanks():
    opts = OptionSet("status", STATUSES).extend("Done", "", "  On Hold ")
    assert opts.options.count("Done") == 1
    assert "On Hold" in opts.options


def test_coerce_passes_unknown_values_even_when_strict():
    opts = OptionSet("tier", ["Tier 1"], strict=True)
    assert opts.coerce(" Legacy ") == "Legacy"
    assert opts.coerce(None) == ""


def test_validate_only_rejects_when_strict():
    assert OptionSet("tier", ["Tier 1"]).validate("Legacy") == "Legacy"
    with pytest.raises(ValueError):
        OptionSet("tier", ["Tier 1"], strict=True).validate("Legacy")
    assert OptionSet("tier", ["Tier 1"], strict=True).validate("") == ""


def test_vocabulary_from_config_adds_extra_values():
    cfg = SyncConfig(extra_tiers=["Tier 5"], extra_statuses=["On Hold"], strict_options=True)
    vocab = Vocabulary.from_config(cfg)
    assert vocab.tiers.is_known("Tier 5")
    vocab.validate_fields({"tier": "Tier 5", "status": "On Hold", "notes": "anything"})
    with pytest.raises(ValueError):
        vocab.validate_fields({"requestType": "Sculpture"})
