#!/usr/bin/env python3
"""
Demo script — run the analysis pipeline locally without Docker/Celery.

Uses a throwaway SQLite database and file store, and shows a successful
lease analysis, a fallback Result for an unsupported document, and a
restart that resumes from the last checkpoint.

Usage:
    cd backend
    python -m scripts.demo_pipeline
"""

import asyncio
import os
import sys
import tempfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

SAMPLE_LEASE = """建物賃貸借契約書

賃貸人 株式会社サンプル不動産（以下「貸主」という）
賃借人 株式会社テスト商事（以下「借主」という）

第1条 貸主は東京都千代田区所在のオフィスを借主に賃貸する。
第2条 契約期間は2024年4月1日から24ヶ月とする。期間満了時は協議の上更新できる。
第3条 賃料は月額 350,000円 とし、毎月末日までに支払う。
第4条 借主は3ヶ月前の予告により中途解約することができる。
"""


async def run_success_flow(services):
    """DEMO 1: plain-text lease contract runs through all four phases."""
    from leaselogic.pipeline.context import AnalysisRequest

    print("\n" + "=" * 70)
    print("  DEMO 1: Successful analysis")
    print("=" * 70)

    data = SAMPLE_LEASE.encode("utf-8")
    services.file_store.save("demo-lease", data)
    snapshot = await services.orchestrator.start(AnalysisRequest(
        file_id="demo-lease",
        file_name="lease.txt",
        file_size=len(data),
        content_type="text/plain",
    ))
    _print_snapshot("created", snapshot)

    snapshot = await services.orchestrator.resume(snapshot.id)
    _print_snapshot("finished", snapshot)
    _print_result(snapshot.result)


async def run_fallback_flow(services):
    """DEMO 2: a .docx has no text extractor, so Parsing fails permanently."""
    from leaselogic.pipeline.context import AnalysisRequest

    print("\n" + "=" * 70)
    print("  DEMO 2: Permanent failure → fallback Result")
    print("=" * 70)

    services.file_store.save("demo-docx", b"PK\x03\x04not really a docx")
    snapshot = await services.orchestrator.start(AnalysisRequest(
        file_id="demo-docx",
        file_name="contract.docx",
        file_size=24,
        content_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ))
    snapshot = await services.orchestrator.resume(snapshot.id)
    _print_snapshot("finished", snapshot)
    _print_result(snapshot.result)


async def run_resume_flow(services):
    """DEMO 3: resume() after a restart skips checkpointed phases."""
    from leaselogic.core.constants import CheckpointKind

    print("\n" + "=" * 70)
    print("  DEMO 3: Resume is idempotent")
    print("=" * 70)

    job_ids = await services.states.list_unfinished()
    print(f"  Unfinished jobs before resume: {len(job_ids)}")

    snapshot = await services.status.get_status((await _any_job(services)))
    checkpoints = await services.checkpoints.read_all(snapshot.id)
    print(f"  Checkpoints for {snapshot.id[:12]}...: {', '.join(str(k) for k in checkpoints)}")

    again = await services.orchestrator.resume(snapshot.id)
    same = again.result == snapshot.result and again.status == snapshot.status
    print(f"  Second resume changed nothing: {same}")
    assert CheckpointKind.REPORTING in checkpoints or CheckpointKind.FALLBACK in checkpoints


async def _any_job(services):
    from sqlalchemy import select
    from leaselogic.db.models.analysis_job import AnalysisJob

    async with services.session_factory() as session:
        result = await session.execute(select(AnalysisJob.id).limit(1))
        return result.scalar_one()


def _print_snapshot(label, snapshot):
    print(f"\n{'─' * 50}")
    print(f"  [{label}]")
    print(f"  Analysis ID : {snapshot.id[:12]}...")
    print(f"  Status      : {snapshot.status}")
    print(f"  Phase       : {snapshot.phase}")
    print(f"  Progress    : {snapshot.progress}%")
    print(f"  Message     : {snapshot.message}")
    if snapshot.error:
        print(f"  Error       : {snapshot.error}")


def _print_result(result):
    """Pretty-print an AnalysisResult payload."""
    analysis = result["analysisResult"]
    print(f"\n  Result:")
    print(f"    isLease       : {analysis['isLease']}")
    print(f"    confidence    : {analysis['confidence']}")
    print(f"    leaseType     : {analysis['leaseType']}")
    print(f"    summary       : {analysis['summary']}")
    for title, key in (("Key findings", "keyFindings"), ("Risk factors", "riskFactors")):
        print(f"    {title}:")
        for item in analysis[key]:
            print(f"      - {item}")
    print(f"    processingTime: {result['processingTime']}")
    print(f"{'─' * 50}\n")


async def main():
    from leaselogic.core.config import Settings
    from leaselogic.core.logging import setup_logging
    from leaselogic.services import build_services

    setup_logging("WARNING")     # quiet logs, show formatted output only

    workdir = tempfile.mkdtemp(prefix="leaselogic-demo-")
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{workdir}/demo.db",
        FILE_STORE_DIR=f"{workdir}/documents",
    )
    services = build_services(settings)
    await services.init_db()

    print("\n╔" + "═" * 68 + "╗")
    print("║            LEASELOGIC — DURABLE ANALYSIS PIPELINE DEMO             ║")
    print("╚" + "═" * 68 + "╝")

    try:
        await run_success_flow(services)
        await run_fallback_flow(services)
        await run_resume_flow(services)
    finally:
        await services.aclose()

    print("\n✅ All demos completed successfully!")
    print(f"   Database and documents left in {workdir}\n")


if __name__ == "__main__":
    asyncio.run(main())
