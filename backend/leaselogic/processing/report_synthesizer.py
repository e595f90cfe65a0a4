"""
Deterministic report synthesizer.

Builds the AnalysisResult for all three terminal paths.  Every value is
derived from the arguments, so re-running with the same inputs yields
the same Result.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from leaselogic.core.constants import LeaseType
from leaselogic.core.logging import get_logger
from leaselogic.pipeline.result import (
    AnalysisResult,
    ContractSummary,
    DetailedLeaseAnalysis,
    FileInfo,
    IdentifiedAssetAnalysis,
    LeaseAnalysis,
    RightToControlAnalysis,
    SubstitutionRightsAnalysis,
    format_processing_time,
)
from leaselogic.processing.base import ReportSynthesizer
from leaselogic.processing.content_structurer import UNKNOWN

logger = get_logger(__name__)


def _file_info(request: dict[str, Any], uploaded_at: datetime) -> FileInfo:
    return FileInfo(
        file_name=request.get("fileName", ""),
        file_size=request.get("fileSize", 0),
        uploaded_at=uploaded_at,
    )


def _contract_period(period: dict[str, Any]) -> str:
    months = period.get("durationMonths")
    start, end = period.get("startDate"), period.get("endDate")
    if start and end:
        return f"{start} to {end} ({months}ヶ月)"
    return f"{UNKNOWN} ({months}ヶ月)"


def _monthly_payment(payment: dict[str, Any]) -> str:
    amount = payment.get("amount") or 0
    return f"{amount:,} {payment.get('currency', 'JPY')} ({payment.get('frequency', UNKNOWN)})"


class DefaultReportSynthesizer(ReportSynthesizer):
    def synthesize(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        structured: dict[str, Any],
        classification: dict[str, Any],
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        is_lease = bool(classification.get("isLease"))
        asset = structured.get("assetDetails", {})
        period = structured.get("contractPeriod", {})
        payment = structured.get("paymentTerms", {})

        result = AnalysisResult(
            analysis_id=analysis_id,
            file_info=_file_info(request, started_at),
            analysis_result=LeaseAnalysis(
                is_lease=is_lease,
                confidence=classification.get("confidence", 0.0),
                lease_type=classification.get("leaseType", LeaseType.NOT_APPLICABLE),
                summary=ContractSummary(
                    contract_type="リース契約" if is_lease else "サービス契約",
                    primary_asset=asset.get("assetDescription", UNKNOWN),
                    contract_period=_contract_period(period),
                    monthly_payment=_monthly_payment(payment),
                ),
                lease_analysis=DetailedLeaseAnalysis(
                    identified_asset=IdentifiedAssetAnalysis.model_validate(
                        classification.get("identifiedAssetAnalysis") or {}
                    ),
                    right_to_control=RightToControlAnalysis.model_validate(
                        classification.get("rightToControlAnalysis") or {}
                    ),
                    substantive_substitution_rights=SubstitutionRightsAnalysis.model_validate(
                        classification.get("substitutionRightsAnalysis") or {}
                    ),
                ),
                key_findings=list(classification.get("reasoning", [])),
                risk_factors=self._risk_factors(structured),
                recommendations=self._recommendations(is_lease),
                compliance_requirements=self._compliance_requirements(is_lease),
            ),
            document_summary=(
                f"{asset.get('assetType', UNKNOWN)}に関する{'リース契約' if is_lease else 'サービス契約'}。"
                f"契約期間{period.get('durationMonths', 0)}ヶ月、"
                f"月額{payment.get('amount') or 0:,}円。"
                f"{'新会計基準の適用対象' if is_lease else 'リース会計基準の適用対象外'}。"
            ),
            processing_time=format_processing_time(completed_at - started_at),
            completed_at=completed_at,
        )
        logger.info("Report synthesized", analysis_id=analysis_id, is_lease=is_lease)
        return result

    def synthesize_error(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        error: str,
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        return self._negative_result(
            analysis_id=analysis_id,
            request=request,
            contract_type="解析エラー",
            key_findings=["解析処理中にエラーが発生しました"],
            risk_factors=[f"エラー詳細: {error}"],
            recommendations=["ファイル形式や内容を確認して再試行してください"],
            document_summary=f"解析エラーのため、ドキュメントの内容を処理できませんでした。エラー: {error}",
            started_at=started_at,
            completed_at=completed_at,
        )

    def synthesize_terminated(
        self,
        *,
        analysis_id: str,
        request: dict[str, Any],
        reason: str,
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        return self._negative_result(
            analysis_id=analysis_id,
            request=request,
            contract_type="解析中止",
            key_findings=["解析は外部からの要求により中止されました"],
            risk_factors=[f"中止理由: {reason}"],
            recommendations=["必要に応じて再度解析を依頼してください"],
            document_summary=f"解析が中止されたため、ドキュメントの内容は評価されていません。理由: {reason}",
            started_at=started_at,
            completed_at=completed_at,
        )

    # ─── Helpers ───────────────────────────────────────

    @staticmethod
    def _negative_result(
        *,
        analysis_id: str,
        request: dict[str, Any],
        contract_type: str,
        key_findings: list[str],
        risk_factors: list[str],
        recommendations: list[str],
        document_summary: str,
        started_at: datetime,
        completed_at: datetime,
    ) -> AnalysisResult:
        return AnalysisResult(
            analysis_id=analysis_id,
            file_info=_file_info(request, started_at),
            analysis_result=LeaseAnalysis(
                is_lease=False,
                confidence=0.0,
                lease_type=LeaseType.NOT_APPLICABLE,
                summary=ContractSummary(
                    contract_type=contract_type,
                    primary_asset=UNKNOWN,
                    contract_period=UNKNOWN,
                    monthly_payment=UNKNOWN,
                ),
                key_findings=key_findings,
                risk_factors=risk_factors,
                recommendations=recommendations,
                compliance_requirements=[],
            ),
            document_summary=document_summary,
            processing_time=format_processing_time(completed_at - started_at),
            completed_at=completed_at,
        )

    @staticmethod
    def _risk_factors(structured: dict[str, Any]) -> list[str]:
        period = structured.get("contractPeriod", {})
        factors = []
        if period.get("hasRenewalOption"):
            factors.append("契約更新オプションの存在")
        if period.get("hasTerminationOption"):
            factors.append("中途解約オプションの存在")
        if structured.get("specialClauses"):
            factors.append("特別条項による判定の複雑化")
        return factors

    @staticmethod
    def _recommendations(is_lease: bool) -> list[str]:
        if is_lease:
            return [
                "IFRS 16 / ASC 842の適用対象として認識",
                "使用権資産とリース負債の計上が必要",
                "契約開始日における初期測定の実施",
            ]
        return [
            "リース会計基準の適用対象外として処理",
            "サービス契約として費用処理",
        ]

    @staticmethod
    def _compliance_requirements(is_lease: bool) -> list[str]:
        if not is_lease:
            return []
        return [
            "使用権資産の認識と測定",
            "リース負債の計算と計上",
            "注記事項の開示準備",
            "リース期間の定期的な見直し",
        ]
