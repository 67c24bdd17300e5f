from decimal import Decimal

import pytest

from billtrack.ocr import OcrEngine, OcrGateway, OcrResult, TesseractEngine


class StubEngine(OcrEngine):
    def __init__(self, name, result=None, available=True):
        self.name = name
        self.result = result
        self.available = available
        self.calls = 0

    def is_available(self):
        return self.available

    def extract(self, path):
        self.calls += 1
        return self.result


def test_first_success_wins():
    first = StubEngine("first", OcrResult.succeeded(amount=Decimal("1.00")))
    second = StubEngine("second", OcrResult.succeeded(amount=Decimal("2.00")))

    result = OcrGateway([first, second]).extract("/tmp/scan.png")

    assert result.amount == Decimal("1.00")
    assert result.engine == "first"
    assert second.calls == 0


def test_falls_back_to_next_engine():
    broken = StubEngine("broken", OcrResult.failed("timeout"))
    working = StubEngine("working", OcrResult.succeeded(provider="Acme"))

    result = OcrGateway([broken, working]).extract("/tmp/scan.png")

    assert result.success
    assert result.engine == "working"


def test_all_engines_fail():
    gateway = OcrGateway([StubEngine("a", OcrResult.failed("x")), StubEngine("b", OcrResult.failed("y"))])

    result = gateway.extract("/tmp/scan.png")

    assert not result.success
    assert result.error == "a: x; b: y"


def test_unavailable_engines_are_skipped():
    offline = StubEngine("offline", OcrResult.succeeded(), available=False)
    gateway = OcrGateway([offline])

    assert gateway.available_engines() == []
    assert not gateway.is_available()
    assert gateway.extract("/tmp/scan.png").error == "No OCR engine available"
    assert offline.calls == 0


def test_disabled_gateway():
    gateway = OcrGateway([StubEngine("on", OcrResult.succeeded())], enabled=False)

    assert not gateway.is_available()
    assert not gateway.extract("/tmp/scan.png").success


def test_tesseract_without_command_is_unavailable():
    assert not TesseractEngine(cmd=None).is_available()


def test_tesseract_missing_file(tmp_path):
    result = TesseractEngine(cmd="tesseract").extract(str(tmp_path / "missing.png"))

    assert not result.success
    assert "File not found" in result.error


@pytest.mark.parametrize("raw", [{}, {"text": "hello"}])
def test_result_raw_json(raw):
    assert OcrResult.succeeded(raw=raw).raw_json.startswith("{")


def test_single_engine_failure_keeps_its_message():
    gateway = OcrGateway([StubEngine("only", OcrResult.failed("No text recognised"))])

    result = gateway.extract("/tmp/scan.png")

    assert not result.success
    assert result.error == "No text recognised"
    assert result.engine == "only"
