from __future__ import annotations

import logging

from ga4gh_search_proxy.core.logging import StructuredLogFormatter, bind, configure_logging, get_logger


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_structured_formatter_orders_extras():
    formatter = StructuredLogFormatter(use_color=False)
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Fetching page",
        args=(),
        exc_info=None,
    )
    record.zeta = "last"
    record.url = "http://search.test/tables"
    record.collection = "patients"

    rendered = formatter.format(record)

    assert "Fetching page" in rendered
    assert rendered.endswith("| collection=patients url=http://search.test/tables zeta=last")


def test_bind_merges_fields_without_mutating_parent():
    handler = _ListHandler()
    base = get_logger("tests.bind", extra={"base_url": "http://search.test/"})
    base.logger.addHandler(handler)
    base.logger.setLevel(logging.DEBUG)
    try:
        child = bind(base, collection="patients")
        child.info("scan", extra={"items": 3})
        base.info("plain")
    finally:
        base.logger.removeHandler(handler)

    scan, plain = handler.records
    assert scan.base_url == "http://search.test/"
    assert scan.collection == "patients"
    assert scan.items == 3
    assert not hasattr(plain, "collection")


def test_configure_logging_force_sets_root_level():
    configure_logging("WARNING", force=True)

    assert logging.getLogger().level == logging.WARNING
