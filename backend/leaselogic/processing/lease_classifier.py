"""
Rule-based lease classifier.

Keyword screening over the structured content: presence of any lease
indicator classifies the contract as a lease with a fixed confidence
and the standard IFRS 16 / ASC 842 citations for each criterion.
"""

from __future__ import annotations

from typing import Any

from leaselogic.core.constants import LeaseType
from leaselogic.core.logging import get_logger
from leaselogic.processing.base import LeaseClassifier

logger = get_logger(__name__)

LEASE_INDICATORS = ("賃貸", "リース", "lease", "rental", "借用", "使用権")
LEASE_CONFIDENCE = 0.85
NON_LEASE_CONFIDENCE = 0.75

IDENTIFIED_ASSET_CITATIONS = ["IFRS 16.B13", "ASC 842-10-15-13"]
RIGHT_TO_CONTROL_CITATIONS = ["IFRS 16.B9(a)", "ASC 842-10-15-3(a)"]
SUBSTITUTION_CITATIONS = ["IFRS 16.B14", "ASC 842-10-15-4"]


def analysis_text(structured: dict[str, Any]) -> str:
    """Flatten structured content into the text the rules run against."""
    parties = structured.get("contractParties", {})
    asset = structured.get("assetDetails", {})
    payment = structured.get("paymentTerms", {})
    period = structured.get("contractPeriod", {})
    clauses = structured.get("specialClauses", [])
    return "\n".join([
        f"契約当事者: 貸手: {parties.get('lessor', '')}, 借手: {parties.get('lessee', '')}",
        f"資産詳細: {asset.get('assetType', '')} - {asset.get('assetDescription', '')} ({asset.get('location', '')})",
        f"支払条件: {payment.get('amount', 0):,} {payment.get('currency', 'JPY')} ({payment.get('frequency', '')})",
        f"契約期間: {period.get('durationMonths', '')}ヶ月",
        f"特別条項: {', '.join(c.get('description', '') for c in clauses)}",
        "",
        "全文:",
        structured.get("rawContent", ""),
    ])


def determine_lease_type(text: str) -> LeaseType:
    if "ファイナンス" in text or "finance" in text:
        return LeaseType.FINANCE_LEASE
    return LeaseType.OPERATING_LEASE


class RuleBasedLeaseClassifier(LeaseClassifier):
    def classify(self, structured: dict[str, Any]) -> dict[str, Any]:
        text = analysis_text(structured).lower()
        indicators = [word for word in LEASE_INDICATORS if word in text]
        asset = structured.get("assetDetails", {})

        if indicators:
            lease_type = determine_lease_type(text)
            classification = {
                "isLease": True,
                "confidence": LEASE_CONFIDENCE,
                "leaseType": str(lease_type),
                "identifiedAssetAnalysis": {
                    "hasIdentifiedAsset": True,
                    "assetDescription": asset.get("assetDescription", ""),
                    "assetSpecificity": "特定された物理的資産",
                    "citations": IDENTIFIED_ASSET_CITATIONS,
                },
                "rightToControlAnalysis": {
                    "hasRightToControl": True,
                    "controlIndicators": [
                        "資産の使用方法を指示する権利",
                        "資産からの経済的便益を享受する権利",
                    ],
                    "citations": RIGHT_TO_CONTROL_CITATIONS,
                },
                "substitutionRightsAnalysis": {
                    "hasSubstitutionRights": False,
                    "analysis": "貸手に実質的な代替権は見られない",
                    "citations": SUBSTITUTION_CITATIONS,
                },
                "reasoning": [
                    "契約書にリース関連の用語が含まれている",
                    "特定された資産の使用権が識別される",
                    "借手が資産の使用を制御する権利を有する",
                ],
                "citations": [
                    *IDENTIFIED_ASSET_CITATIONS,
                    *RIGHT_TO_CONTROL_CITATIONS,
                    *SUBSTITUTION_CITATIONS,
                ],
                "indicators": indicators,
            }
        else:
            classification = {
                "isLease": False,
                "confidence": NON_LEASE_CONFIDENCE,
                "leaseType": str(LeaseType.SERVICE_CONTRACT),
                "identifiedAssetAnalysis": {},
                "rightToControlAnalysis": {},
                "substitutionRightsAnalysis": {},
                "reasoning": [
                    "リース契約を示す明確な要素が見つからない",
                    "サービス契約の特性が強い",
                ],
                "citations": [],
                "indicators": [],
            }

        classification["fileId"] = structured.get("fileId", "")
        logger.info(
            "Lease classified",
            file_id=classification["fileId"],
            is_lease=classification["isLease"],
            lease_type=classification["leaseType"],
            confidence=classification["confidence"],
        )
        return classification
