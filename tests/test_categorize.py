import json
import logging

import pytest

from expense_import.categorize import BATCH_SIZE, CategoryBatchClassifier
from expense_import.exceptions import (
    ClassificationError,
    QuotaExceededError,
    ServiceError,
)
from expense_import.models import Category
from tests.helpers.classifier_stub import ScriptedPort

# ---- Helpers -----------------------------------------------------------------


def _by_keyword(description: str) -> str:
    d = description.lower()
    if "cafe" in d or "lawson" in d:
        return "Food"
    if "jr" in d or "taxi" in d:
        return "Transport"
    return "Other"


def _descriptions(n: int) -> list[str]:
    return [f"STORE {i:03d}" for i in range(n)]


# ---- Happy path ----------------------------------------------------------------


def test_single_chunk_makes_one_call():
    port = ScriptedPort(_by_keyword)
    out = CategoryBatchClassifier(port).classify(["CAFE MOKA", "JR EAST", "UNKNOWN SHOP"])

    assert out == {
        "CAFE MOKA": Category.FOOD,
        "JR EAST": Category.TRANSPORT,
        "UNKNOWN SHOP": Category.OTHER,
    }
    assert len(port.calls) == 1
    call = port.calls[0]
    assert call["expect_json"] is True
    assert "Daily Goods" in call["system_prompt"]
    assert call["user_prompt"].splitlines()[2:5] == [
        "1. CAFE MOKA",
        "2. JR EAST",
        "3. UNKNOWN SHOP",
    ]


@pytest.mark.parametrize("n,expected_calls", [(1, 1), (10, 1), (11, 2), (25, 3), (30, 3)])
def test_number_of_requests_is_ceil_n_over_batch_size(n, expected_calls):
    port = ScriptedPort()
    out = CategoryBatchClassifier(port).classify(_descriptions(n))

    assert len(port.calls) == expected_calls
    assert len(out) == n
    assert all(len(batch) <= BATCH_SIZE for batch in port.batches)


def test_chunks_are_consecutive_slices_in_input_order():
    port = ScriptedPort()
    items = _descriptions(23)
    CategoryBatchClassifier(port, batch_size=10).classify(items)

    assert sorted(port.batches) == [items[0:10], items[10:20], items[20:23]]


def test_duplicates_and_blanks_are_dropped_before_chunking():
    port = ScriptedPort(_by_keyword)
    out = CategoryBatchClassifier(port).classify(
        ["CAFE MOKA", "", "   ", None, "CAFE MOKA", "cafe moka"]
    )

    assert port.batches == [["CAFE MOKA", "cafe moka"]]
    assert out == {"CAFE MOKA": Category.FOOD, "cafe moka": Category.FOOD}


def test_empty_input_makes_no_call():
    port = ScriptedPort()
    assert CategoryBatchClassifier(port).classify(["", "  ", None]) == {}
    assert port.calls == []


def test_unknown_label_maps_to_other_for_that_entry_only():
    port = ScriptedPort(
        respond=lambda _descs: json.dumps({"1": "Food", "2": "Transport", "3": "Luxury"})
    )
    out = CategoryBatchClassifier(port).classify(["A", "B", "C"])
    assert out == {"A": Category.FOOD, "B": Category.TRANSPORT, "C": Category.OTHER}


def test_labels_are_matched_after_trimming_and_extra_keys_ignored():
    port = ScriptedPort(respond=lambda _d: json.dumps({"1": "  Daily Goods ", "9": "Food"}))
    assert CategoryBatchClassifier(port).classify(["DRUGSTORE"]) == {
        "DRUGSTORE": Category.DAILY_GOODS
    }


# ---- Malformed responses ---------------------------------------------------------


@pytest.mark.parametrize(
    "content,needle",
    [
        ("not json", "not valid JSON"),
        ('["Food", "Food"]', "must be a JSON object"),
        ('{"1": "Food"}', "missing entry 2"),
        ('{"1": "Food", "2": null}', "entry 2 must be a string"),
        ('{"1": "Food", "2": 3}', "entry 2 must be a string"),
    ],
)
def test_malformed_response_raises_service_error(content, needle):
    port = ScriptedPort(respond=lambda _d: content)
    with pytest.raises(ServiceError) as ei:
        CategoryBatchClassifier(port).classify(["A", "B"])
    assert needle in ei.value.message


# ---- Failures across chunks --------------------------------------------------------


def test_one_failed_chunk_fails_the_call_without_cancelling_others():
    def fail(_idx, descs):
        return ServiceError("boom") if descs[0] == "STORE 010" else None

    port = ScriptedPort(fail=fail)
    with pytest.raises(ServiceError, match="boom"):
        CategoryBatchClassifier(port, concurrency=1).classify(_descriptions(30))

    # All three chunks were sent even though the second one failed.
    assert len(port.calls) == 3


def test_quota_error_is_reported_over_other_failures():
    def fail(_idx, descs):
        if descs[0] == "STORE 000":
            return ServiceError("bad answer")
        if descs[0] == "STORE 020":
            return QuotaExceededError()
        return None

    port = ScriptedPort(fail=fail)
    with pytest.raises(QuotaExceededError):
        CategoryBatchClassifier(port).classify(_descriptions(25))


def test_first_failure_in_input_order_is_reported():
    def fail(_idx, descs):
        return ServiceError(f"failed at {descs[0]}") if descs[0] != "STORE 000" else None

    port = ScriptedPort(fail=fail)
    with pytest.raises(ServiceError, match="failed at STORE 010"):
        CategoryBatchClassifier(port).classify(_descriptions(30))


def test_single_chunk_failure_propagates_unwrapped():
    port = ScriptedPort(fail=lambda _i, _d: QuotaExceededError())
    with pytest.raises(QuotaExceededError) as ei:
        CategoryBatchClassifier(port).classify(["A"])
    assert isinstance(ei.value, ClassificationError)


def test_chunk_failures_are_logged(caplog: pytest.LogCaptureFixture):
    port = ScriptedPort(fail=lambda _i, _d: ServiceError("down"))
    with caplog.at_level(logging.INFO, logger="expense_import"), pytest.raises(ServiceError):
        CategoryBatchClassifier(port).classify(_descriptions(12))
    messages = [r.getMessage() for r in caplog.records]
    assert sum(m.startswith("categorize:chunk_failed") for m in messages) == 2
    assert any(m.startswith("categorize:failed chunks=2 failed_chunks=2") for m in messages)


# ---- Concurrency -------------------------------------------------------------------


def test_concurrency_is_bounded():
    port = ScriptedPort(sleep_per_call=0.05)
    out = CategoryBatchClassifier(port, batch_size=2, concurrency=3).classify(_descriptions(20))

    assert len(port.calls) == 10
    assert len(out) == 20
    assert 1 < port.max_inflight <= 3


def test_concurrency_of_one_runs_sequentially():
    port = ScriptedPort(sleep_per_call=0.01)
    CategoryBatchClassifier(port, batch_size=2, concurrency=1).classify(_descriptions(6))
    assert port.max_inflight == 1


# ---- Construction and single-item classification ------------------------------------


@pytest.mark.parametrize("kwargs", [{"batch_size": 0}, {"concurrency": 0}, {"batch_size": 1.5}])
def test_invalid_settings_raise(kwargs):
    with pytest.raises(ValueError):
        CategoryBatchClassifier(ScriptedPort(), **kwargs)


def test_predict_category_uses_plain_text_answer():
    port = ScriptedPort(_by_keyword)
    classifier = CategoryBatchClassifier(port)

    assert classifier.predict_category("TAXI TOKYO") is Category.TRANSPORT
    assert port.calls[0]["expect_json"] is False
    assert port.calls[0]["descriptions"] == ["TAXI TOKYO"]


def test_predict_category_unknown_answer_is_other():
    port = ScriptedPort(lambda _d: "I think this is groceries")
    assert CategoryBatchClassifier(port).predict_category("SUPER") is Category.OTHER


def test_predict_category_rejects_blank():
    port = ScriptedPort()
    with pytest.raises(ValueError):
        CategoryBatchClassifier(port).predict_category("   ")
    assert port.calls == []
