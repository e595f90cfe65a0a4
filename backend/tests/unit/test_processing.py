import io
from datetime import datetime, timedelta, timezone

import pytest
from pypdf import PdfWriter

from leaselogic.pipeline.errors import NotFoundError
from leaselogic.pipeline.result import AnalysisResult, format_processing_time
from leaselogic.processing.base import UnsupportedDocumentError
from leaselogic.processing.content_structurer import UNKNOWN, RegexContentStructurer
from leaselogic.processing.document_parser import TextDocumentParser
from leaselogic.processing.file_store import LocalFileStore
from leaselogic.processing.lease_classifier import RuleBasedLeaseClassifier
from leaselogic.processing.report_synthesizer import DefaultReportSynthesizer
from tests.fakes import SAMPLE_LEASE, SAMPLE_SERVICE_CONTRACT

STARTED = datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)
REQUEST = {"fileId": "f1", "fileName": "lease.txt", "fileSize": 512, "contentType": "text/plain"}


def parse_text(text, encoding="utf-8", **kwargs):
    options = {"file_id": "f1", "file_name": "lease.txt", "content_type": "text/plain"}
    options.update(kwargs)
    return TextDocumentParser().parse(io.BytesIO(text.encode(encoding)), **options)


def structure(text):
    return RegexContentStructurer().structure(parse_text(text))


@pytest.mark.unit
class TestDocumentParser:
    def test_plain_text(self):
        """Test plain text yields content, pages, lines and paragraphs."""
        parsed = parse_text(SAMPLE_LEASE)
        assert parsed["fileId"] == "f1"
        assert parsed["pageCount"] == 1
        assert parsed["pages"][0]["pageNumber"] == 1
        assert parsed["pages"][0]["lines"][0] == "建物賃貸借契約書"
        assert "350,000円" in parsed["content"]
        assert parsed["paragraphs"][0] == "建物賃貸借契約書"
        assert len(parsed["paragraphs"]) == 3

    def test_form_feed_splits_pages(self):
        """Test form feeds separate pages."""
        parsed = parse_text("第1頁\f第2頁\f第3頁")
        assert parsed["pageCount"] == 3
        assert [page["lines"] for page in parsed["pages"]] == [["第1頁"], ["第2頁"], ["第3頁"]]

    def test_shift_jis_text(self):
        """Test Shift_JIS encoded text is decoded."""
        parsed = parse_text(SAMPLE_LEASE, encoding="cp932")
        assert "賃貸人" in parsed["content"]

    def test_unsupported_content_type(self):
        """Test formats without a text extractor are rejected."""
        with pytest.raises(UnsupportedDocumentError):
            parse_text("x", content_type="application/msword")

    def test_empty_document(self):
        """Test documents without text are rejected."""
        with pytest.raises(UnsupportedDocumentError):
            parse_text("  \n\n ")

    def test_pdf_without_text_layer(self):
        """Test a PDF with no extractable text is rejected."""
        writer = PdfWriter()
        writer.add_blank_page(width=200, height=200)
        buffer = io.BytesIO()
        writer.write(buffer)
        buffer.seek(0)

        with pytest.raises(UnsupportedDocumentError):
            TextDocumentParser().parse(
                buffer, file_id="p1", file_name="blank.pdf", content_type="application/pdf"
            )

    def test_corrupt_pdf(self):
        """Test unreadable PDFs are rejected."""
        with pytest.raises(UnsupportedDocumentError):
            TextDocumentParser().parse(
                io.BytesIO(b"%PDF-1.4 garbage"),
                file_id="p1",
                file_name="broken.pdf",
                content_type="application/pdf",
            )


@pytest.mark.unit
class TestContentStructurer:
    def test_lease_fields(self):
        """Test the standard lease fields are extracted."""
        structured = structure(SAMPLE_LEASE)
        assert structured["fileId"] == "f1"
        assert structured["contractParties"]["lessor"].startswith("賃貸人")
        assert structured["contractParties"]["lessee"].startswith("賃借人")
        assert structured["assetDetails"]["assetType"] == "建物"
        assert structured["assetDetails"]["location"] == "東京都千代田区"
        assert structured["paymentTerms"] == {"amount": 350000, "currency": "JPY", "frequency": "毎月"}

        period = structured["contractPeriod"]
        assert period["startDate"] == "2024-04-01"
        assert period["endDate"] == "2026-04-01"
        assert period["durationMonths"] == 24
        assert period["hasRenewalOption"] is True
        assert period["hasTerminationOption"] is True
        assert [clause["type"] for clause in structured["specialClauses"]] == ["更新オプション", "中途解約"]

    def test_missing_fields_are_unknown(self):
        """Test absent fields fall back to defaults."""
        structured = structure("Equipment rental agreement")
        assert structured["contractParties"]["lessor"] == UNKNOWN
        assert structured["assetDetails"]["location"] == UNKNOWN
        assert structured["paymentTerms"]["amount"] == 0
        assert structured["contractPeriod"]["startDate"] is None
        assert structured["contractPeriod"]["durationMonths"] == 12
        assert structured["specialClauses"] == []

    def test_duration_in_years(self):
        """Test 年間 durations are converted to months."""
        structured = structure("契約期間は2023年1月31日から3年間とする。")
        assert structured["contractPeriod"]["durationMonths"] == 36
        assert structured["contractPeriod"]["endDate"] == "2026-01-31"

    def test_end_date_clamps_to_month_end(self):
        """Test adding months to a 31st lands on the last day of a short month."""
        structured = structure("2024年1月31日から1ヶ月")
        assert structured["contractPeriod"]["endDate"] == "2024-02-29"

    def test_empty_content(self):
        """Test empty parsed content is rejected."""
        with pytest.raises(UnsupportedDocumentError):
            RegexContentStructurer().structure({"fileId": "f1", "content": ""})


@pytest.mark.unit
class TestLeaseClassifier:
    def test_lease_contract(self):
        """Test a rental contract is classified as an operating lease."""
        result = RuleBasedLeaseClassifier().classify(structure(SAMPLE_LEASE))
        assert result["isLease"] is True
        assert result["confidence"] == 0.85
        assert result["leaseType"] == "OperatingLease"
        assert "賃貸" in result["indicators"]
        assert "IFRS 16.B13" in result["citations"]
        assert result["fileId"] == "f1"

    def test_finance_lease(self):
        """Test finance lease wording selects FinanceLease."""
        result = RuleBasedLeaseClassifier().classify(structure("ファイナンス・リース契約書"))
        assert result["leaseType"] == "FinanceLease"

    def test_service_contract(self):
        """Test a contract with no lease indicators is a service contract."""
        result = RuleBasedLeaseClassifier().classify(structure(SAMPLE_SERVICE_CONTRACT))
        assert result["isLease"] is False
        assert result["confidence"] == 0.75
        assert result["leaseType"] == "ServiceContract"
        assert result["citations"] == []


@pytest.mark.unit
class TestReportSynthesizer:
    def test_success_result(self):
        """Test the success Result combines structure and classification."""
        structured = structure(SAMPLE_LEASE)
        classification = RuleBasedLeaseClassifier().classify(structured)

        result = DefaultReportSynthesizer().synthesize(
            analysis_id="job-1",
            request=REQUEST,
            structured=structured,
            classification=classification,
            started_at=STARTED,
            completed_at=STARTED + timedelta(seconds=42),
        )

        assert result.analysis_id == "job-1"
        assert result.file_info.file_name == "lease.txt"
        assert result.processing_time == "00:00:42.000000"
        analysis = result.analysis_result
        assert analysis.is_lease is True
        assert analysis.summary.contract_type == "リース契約"
        assert analysis.summary.monthly_payment == "350,000 JPY (毎月)"
        assert analysis.lease_analysis.identified_asset.has_identified_asset is True
        assert "中途解約オプションの存在" in analysis.risk_factors
        assert len(analysis.compliance_requirements) == 4

    def test_error_result(self):
        """Test the error Result is negative and carries the error."""
        result = DefaultReportSynthesizer().synthesize_error(
            analysis_id="job-1",
            request=REQUEST,
            error="timeout",
            started_at=STARTED,
            completed_at=STARTED + timedelta(seconds=1),
        )
        analysis = result.analysis_result
        assert analysis.is_lease is False
        assert analysis.confidence == 0.0
        assert analysis.lease_type == "NotApplicable"
        assert analysis.key_findings == ["解析処理中にエラーが発生しました"]
        assert analysis.risk_factors == ["エラー詳細: timeout"]

    def test_terminated_result(self):
        """Test the termination Result names the reason."""
        result = DefaultReportSynthesizer().synthesize_terminated(
            analysis_id="job-1",
            request=REQUEST,
            reason="Terminated by external request",
            started_at=STARTED,
            completed_at=STARTED,
        )
        assert result.analysis_result.summary.contract_type == "解析中止"
        assert result.analysis_result.risk_factors == ["中止理由: Terminated by external request"]

    def test_payload_uses_camel_case(self):
        """Test the stored payload is camelCase and loads back."""
        result = DefaultReportSynthesizer().synthesize_error(
            analysis_id="job-1",
            request=REQUEST,
            error="boom",
            started_at=STARTED,
            completed_at=STARTED,
        )
        payload = result.to_payload()
        assert payload["analysisId"] == "job-1"
        assert payload["analysisResult"]["isLease"] is False
        assert "riskFactors" in payload["analysisResult"]
        assert AnalysisResult.from_payload(payload) == result


@pytest.mark.unit
class TestProcessingTime:
    @pytest.mark.parametrize(
        "elapsed, expected",
        [
            (timedelta(0), "00:00:00.000000"),
            (timedelta(hours=1, minutes=2, seconds=3, microseconds=4), "01:02:03.000004"),
            (timedelta(days=1, seconds=5), "24:00:05.000000"),
            (timedelta(seconds=-3), "00:00:00.000000"),
        ],
    )
    def test_format(self, elapsed, expected):
        """Test durations render as HH:MM:SS.ffffff."""
        assert format_processing_time(elapsed) == expected


@pytest.mark.unit
class TestLocalFileStore:
    def test_save_and_open(self, tmp_path):
        """Test stored files can be found and read back."""
        store = LocalFileStore(tmp_path / "docs")
        store.save("f1", b"hello")
        assert store.exists("f1")
        with store.open_stream("f1") as stream:
            assert stream.read() == b"hello"

    def test_missing_file(self, tmp_path):
        """Test unknown ids are reported missing."""
        store = LocalFileStore(tmp_path)
        assert not store.exists("nope")
        with pytest.raises(NotFoundError):
            store.open_stream("nope")

    @pytest.mark.parametrize("file_id", ["../secret", "a/b", "a\\b", "..", "."])
    def test_path_like_ids_rejected(self, tmp_path, file_id):
        """Test ids cannot escape the store directory."""
        store = LocalFileStore(tmp_path)
        assert not store.exists(file_id)
        with pytest.raises(ValueError):
            store.save(file_id, b"x")
