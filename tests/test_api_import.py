import io
import logging

import pytest

from expense_import import (
    Category,
    CategoryBatchClassifier,
    ImportResult,
    QuotaExceededError,
    ServiceError,
    UnknownFormatError,
    classify_with_fallback,
    import_statement,
    import_statement_file,
)
from tests.helpers.classifier_stub import ScriptedPort

HEADER = "ご利用日,ご利用店名,ご利用金額,支払区分,今回回数,お支払い金額,備考"


def _decide(description: str) -> str:
    return {"ローソン": "Food", "ＪＲ東日本": "Transport"}.get(description, "Other")


def _stream(lines: list[str]) -> io.BytesIO:
    return io.BytesIO(("\r\n".join(lines) + "\r\n").encode("cp932"))


def test_import_statement_categorizes_rows_in_file_order():
    port = ScriptedPort(_decide)
    result = import_statement(
        _stream(
            [
                HEADER,
                "2024/1/6,ローソン,480,１回払い,,480,",
                "2024/1/7,ＪＲ東日本,1200,１回払い,,1200,",
                "2024/1/8,BAD",
                "2024/1/9,ローソン,220,１回払い,,220,",
                "2024/1/10,AMAZON.CO.JP,3000,１回払い,,3000,",
            ]
        ),
        "mitsuisumitomo_old",
        classifier=CategoryBatchClassifier(port),
    )

    assert isinstance(result, ImportResult)
    assert result.classification_fallback is False
    assert [(t.transaction.description, t.category) for t in result.transactions] == [
        ("ローソン", Category.FOOD),
        ("ＪＲ東日本", Category.TRANSPORT),
        ("ローソン", Category.FOOD),
        ("AMAZON.CO.JP", Category.OTHER),
    ]
    assert [e.line_number for e in result.errors] == [4]
    # Repeated descriptions are only sent once.
    assert port.batches == [["ローソン", "ＪＲ東日本", "AMAZON.CO.JP"]]


def test_classification_failure_falls_back_to_other(caplog: pytest.LogCaptureFixture):
    port = ScriptedPort(_decide, fail=lambda _i, _d: QuotaExceededError())
    with caplog.at_level(logging.ERROR, logger="expense_import"):
        result = import_statement(
            _stream([HEADER, "2024/1/6,ローソン,480", "2024/1/7,ＪＲ東日本,1200"]),
            "mitsuisumitomo_old",
            classifier=CategoryBatchClassifier(port),
        )

    assert result.classification_fallback is True
    assert result.success_count == 2
    assert {t.category for t in result.transactions} == {Category.OTHER}
    expected = "import:classification_fallback descriptions=2 error=QuotaExceededError"
    assert any(r.getMessage().startswith(expected) for r in caplog.records)


def test_fallback_covers_every_chunk_not_only_the_failing_one():
    descriptions = [f"SHOP {i}" for i in range(25)]

    def fail(_idx, descs):
        return ServiceError("bad") if descs[0] == "SHOP 20" else None

    port = ScriptedPort(lambda _d: "Food", fail=fail)
    categories, fallback = classify_with_fallback(
        descriptions, CategoryBatchClassifier(port)
    )

    assert fallback is True
    assert categories == dict.fromkeys(descriptions, Category.OTHER)


def test_no_valid_rows_skips_classification():
    port = ScriptedPort()
    result = import_statement(
        _stream([HEADER, "garbage"]),
        "mitsuisumitomo_old",
        classifier=CategoryBatchClassifier(port),
    )
    assert result.transactions == ()
    assert result.error_count == 1
    assert result.classification_fallback is False
    assert port.calls == []


def test_unknown_format_raises():
    with pytest.raises(UnknownFormatError):
        import_statement(
            _stream([HEADER]), "amex", classifier=CategoryBatchClassifier(ScriptedPort())
        )


def test_import_statement_file(write_statement):
    path = write_statement([HEADER, "2024/1/6,ローソン,480"])
    result = import_statement_file(
        path, "mitsuisumitomo_old", classifier=CategoryBatchClassifier(ScriptedPort(_decide))
    )
    assert result.transactions[0].category is Category.FOOD
    assert result.transactions[0].transaction.amount == 480
