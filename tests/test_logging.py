import logging

from app.core.logging import ExtraFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("app.api.v1.mpesa.service", logging.INFO, __file__, 1, "No school found with paybill", (), None)
    record.__dict__.update(extra)
    return record


def test_extra_fields_are_rendered() -> None:
    line = ExtraFormatter("{levelname} {name} {message}", style="{").format(_record(paybill="999999", receipt="RKTQDM7W6S"))
    assert line == "INFO app.api.v1.mpesa.service No school found with paybill paybill=999999 receipt=RKTQDM7W6S"


def test_plain_record_is_unchanged() -> None:
    line = ExtraFormatter("{levelname} {message}", style="{").format(_record())
    assert line == "INFO No school found with paybill"
