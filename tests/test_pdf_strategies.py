"""Tests for the PDF reader, the extraction strategies and the strategy runner."""
import fitz
import pytest

from core.domain import DocumentProcessingError, ErrorCode
from infrastructure.pdf_readers import PdfParseOptions, PyMuPDFTextReader, get_pdf_reader
from infrastructure.pdf_strategies import (
    Candidate,
    PdfExtractionPipeline,
    decode_hex_string,
    extract_operator_text,
    operators_strategy,
    scan_printable_runs,
    unescape_pdf_string,
)

LINES = [
    "Deze rubriek beschrijft de criteria voor het eindverslag.",
    "Leerlingen worden beoordeeld op inhoud en structuur.",
    "De docent geeft feedback binnen twee weken.",
]

HANDMADE_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n<< /Length 200 >>\nstream\n"
    b"BT /F1 12 Tf 72 712 Td (Dit is een handgemaakte test over rubrieken) Tj ET\n"
    b"BT [(Beoordeling) -300 (van) -300 (leerlingen)] TJ ET\n"
    b"endstream\nendobj\n%%EOF\n"
)


class TestPdfReader:
    def test_reads_generated_pdf(self, pdf_bytes):
        parsed = PyMuPDFTextReader().read(pdf_bytes(LINES, title="Beoordelingsrubriek"))
        assert parsed.page_count == 1
        assert "eindverslag" in parsed.text
        assert parsed.metadata.get("title") == "Beoordelingsrubriek"

    def test_words_mode(self, pdf_bytes):
        options = PdfParseOptions(label="words", combine_text_items=False)
        parsed = PyMuPDFTextReader().read(pdf_bytes(LINES), options)
        assert "Leerlingen worden beoordeeld" in parsed.text

    def test_password_protected_pdf_is_reported(self, pdf_bytes):
        doc = fitz.open(stream=pdf_bytes(LINES), filetype="pdf")
        protected = doc.tobytes(
            encryption=fitz.PDF_ENCRYPT_AES_256, owner_pw="eigenaar", user_pw="geheim"
        )
        doc.close()

        with pytest.raises(DocumentProcessingError) as excinfo:
            PyMuPDFTextReader().read(protected)
        assert excinfo.value.error_code == ErrorCode.ENCRYPTED

    def test_shared_reader_is_initialized_once(self):
        assert get_pdf_reader() is get_pdf_reader()


class TestOperatorStrategy:
    def test_extracts_literal_and_array_operators(self):
        pieces = extract_operator_text(HANDMADE_PDF.decode("latin-1"))
        assert pieces == ["Dit is een handgemaakte test over rubrieken", "Beoordeling van leerlingen"]

    def test_candidates_carry_limits(self):
        candidates = list(operators_strategy(HANDMADE_PDF))
        assert candidates
        assert all(c.method == "pdf-operators" and c.max_chars for c in candidates)

    def test_unescape_literal_strings(self):
        assert unescape_pdf_string(r"caf\351 \(oud\)") == "café (oud)"

    def test_decode_hex_strings(self):
        assert decode_hex_string("48 65 6c 6c 6f") == "Hello"
        assert decode_hex_string("FEFF00480069") == "Hi"

    def test_character_scan_finds_printable_runs(self):
        data = b"\x00\x01binary\xff\xfeDit is een lange leesbare zin\x00\x02ok\x03"
        assert scan_printable_runs(data) == ["Dit is een lange leesbare zin"]


class TestPdfExtractionPipeline:
    def test_structured_parse_wins_for_text_pdf(self, pdf_bytes):
        result = PdfExtractionPipeline().run(pdf_bytes(LINES, title="Beoordelingsrubriek"), "/a.pdf")
        assert result.success
        assert result.method == "pymupdf-default"
        assert result.content.startswith("Titel: Beoordelingsrubriek | Aantal pagina's: 1")
        assert "criteria voor het eindverslag" in result.content

    def test_falls_back_to_operator_regex(self):
        result = PdfExtractionPipeline().run(HANDMADE_PDF, "/kapot.pdf")
        assert result.method == "pdf-operators"
        assert "Beoordeling van leerlingen" in result.content

    def test_empty_buffer_is_rejected(self):
        with pytest.raises(DocumentProcessingError) as excinfo:
            PdfExtractionPipeline().run(b"", "/leeg.pdf")
        assert excinfo.value.error_code == ErrorCode.EMPTY_FILE
        assert "PDF bestand is leeg" in excinfo.value.message

    def test_non_pdf_bytes_are_rejected(self):
        with pytest.raises(DocumentProcessingError) as excinfo:
            PdfExtractionPipeline().run(b"PK\x03\x04 dit is een zip", "/nep.pdf")
        assert excinfo.value.error_code == ErrorCode.INVALID_FORMAT

    def test_gate_applies_uniformly_to_every_strategy(self):
        def noisy(data):
            yield Candidate(text="\x8f\x90 ## ~~ ^^ \x91" * 10, method="noisy")

        def readable(data):
            yield Candidate(
                text="De leerlingen schrijven een verslag over hun stage.", method="readable"
            )

        result = PdfExtractionPipeline(strategies=[noisy, readable]).run(b"%PDF-1.4 x", "/x.pdf")
        assert result.method == "readable"

    def test_strategy_errors_do_not_stop_the_runner(self):
        def broken(data):
            raise RuntimeError("parser crashed")
            yield  # pragma: no cover

        def readable(data):
            yield Candidate(text="Een korte maar leesbare samenvatting van de les.", method="readable")

        result = PdfExtractionPipeline(strategies=[broken, readable]).run(b"%PDF-1.7", "/x.pdf")
        assert result.method == "readable"

    def test_no_readable_strategy_raises_no_text_found(self):
        pipeline = PdfExtractionPipeline(strategies=[lambda data: iter(())])
        with pytest.raises(DocumentProcessingError) as excinfo:
            pipeline.run(b"%PDF-1.4", "/scan.pdf")
        assert excinfo.value.error_code == ErrorCode.NO_TEXT_FOUND

    def test_max_chars_is_enforced(self):
        text = "Dit is een leesbare zin over toetsen. " * 50

        def long_text(data):
            yield Candidate(text=text, method="long", max_chars=100)

        result = PdfExtractionPipeline(strategies=[long_text]).run(b"%PDF-1.4", "/x.pdf")
        assert len(result.content) == 100
