"""
Regex-based contract structurer.

Pulls the handful of fields the classifier and report need out of the
parsed text.  Patterns target Japanese lease contracts with a few
English fallbacks; anything not found is reported as UNKNOWN.
"""

from __future__ import annotations

import calendar
import re
from datetime import date
from typing import Any

from leaselogic.core.logging import get_logger
from leaselogic.processing.base import ContentStructurer, UnsupportedDocumentError

logger = get_logger(__name__)

UNKNOWN = "不明"

_LESSOR = re.compile(r"貸主|貸し主|賃貸人|lessor", re.IGNORECASE)
_LESSEE = re.compile(r"借主|借り主|賃借人|lessee", re.IGNORECASE)

_ASSET_TYPES = ("建物", "車両", "機械", "設備", "オフィス", "倉庫")
_LOCATION = re.compile(r"[\u4e00-\u9fff]{1,3}[都道府県][\u4e00-\u9fff]*?[市区町村]")
_AMOUNT = re.compile(r"(\d[\d,]*)\s*円")
_DATE = re.compile(r"(\d{4})年\s*(\d{1,2})月\s*(\d{1,2})日")
_DURATION_MONTHS = re.compile(r"(\d+)\s*(?:ヶ|ヵ|か|カ|ケ)月")
_DURATION_YEARS = re.compile(r"(\d+)\s*年間")
_DURATION_EN = re.compile(r"(\d+)\s*months?", re.IGNORECASE)

_DEFAULT_DURATION_MONTHS = 12

_RENEWAL_WORDS = ("更新", "延長")
_TERMINATION_WORDS = ("解約", "中途")


def _add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class RegexContentStructurer(ContentStructurer):
    def structure(self, parsed: dict[str, Any]) -> dict[str, Any]:
        content = parsed.get("content") or ""
        if not content.strip():
            raise UnsupportedDocumentError("Parsed document has no content to structure")

        duration = self._duration_months(content)
        start = self._start_date(content)
        end = _add_months(start, duration) if start else None
        clauses = self._special_clauses(content)

        structured = {
            "fileId": parsed.get("fileId", ""),
            "contractParties": {
                "lessor": self._party(content, _LESSOR, _LESSEE),
                "lessee": self._party(content, _LESSEE, _LESSOR),
            },
            "assetDetails": {
                "assetType": next((t for t in _ASSET_TYPES if t in content), UNKNOWN),
                "assetDescription": "契約書に記載された資産",
                "location": self._first(_LOCATION, content),
            },
            "paymentTerms": {
                "amount": self._amount(content),
                "currency": "JPY",
                "frequency": self._frequency(content),
            },
            "contractPeriod": {
                "startDate": start.isoformat() if start else None,
                "endDate": end.isoformat() if end else None,
                "durationMonths": duration,
                "hasRenewalOption": any(w in content for w in _RENEWAL_WORDS),
                "hasTerminationOption": any(w in content for w in _TERMINATION_WORDS),
            },
            "specialClauses": clauses,
            "rawContent": content,
        }

        logger.info(
            "Content structured",
            file_id=structured["fileId"],
            asset_type=structured["assetDetails"]["assetType"],
            duration_months=duration,
            special_clauses=len(clauses),
        )
        return structured

    # ─── Field extractors ──────────────────────────────

    @staticmethod
    def _party(content: str, target: re.Pattern, exclude: re.Pattern) -> str:
        for line in content.splitlines():
            if target.search(line) and not exclude.search(line):
                return line.strip()
        return UNKNOWN

    @staticmethod
    def _first(pattern: re.Pattern, content: str) -> str:
        match = pattern.search(content)
        return match.group(0) if match else UNKNOWN

    @staticmethod
    def _amount(content: str) -> int:
        match = _AMOUNT.search(content)
        if not match:
            return 0
        return int(match.group(1).replace(",", ""))

    @staticmethod
    def _frequency(content: str) -> str:
        if "月額" in content or "毎月" in content:
            return "毎月"
        if "年額" in content or "毎年" in content:
            return "毎年"
        return UNKNOWN

    @staticmethod
    def _start_date(content: str) -> date | None:
        match = _DATE.search(content)
        if not match:
            return None
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None

    @staticmethod
    def _duration_months(content: str) -> int:
        match = _DURATION_MONTHS.search(content)
        if match:
            return int(match.group(1))
        match = _DURATION_YEARS.search(content)
        if match:
            return int(match.group(1)) * 12
        match = _DURATION_EN.search(content)
        if match:
            return int(match.group(1))
        return _DEFAULT_DURATION_MONTHS

    @staticmethod
    def _special_clauses(content: str) -> list[dict[str, str]]:
        clauses = []
        if any(w in content for w in _RENEWAL_WORDS):
            clauses.append({
                "type": "更新オプション",
                "description": "契約更新または延長に関する条項",
                "impact": "リース期間の判定に影響",
            })
        if any(w in content for w in _TERMINATION_WORDS):
            clauses.append({
                "type": "中途解約",
                "description": "中途解約に関する条項",
                "impact": "リース期間の判定に影響",
            })
        return clauses
