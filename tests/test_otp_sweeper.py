import asyncio
from datetime import timedelta

from app.application.ports.otp_session_repo import OTPSessionRecord
from app.config import settings
from app.dependencies import get_memory_otp_repo, sweep_expired_otp_sessions
from app.infrastructure.cleanup.otp_sweeper import OTPSweeper
from app.utils import utcnow


def test_run_once_returns_sweep_result():
    sweeper = OTPSweeper(lambda: 3, interval_seconds=60)
    assert asyncio.run(sweeper.run_once()) == 3


def test_start_and_stop():
    calls = []

    async def scenario():
        sweeper = OTPSweeper(lambda: calls.append(1) or 0, interval_seconds=3600)
        sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.05)
        await sweeper.stop()
        assert not sweeper.is_running

    asyncio.run(scenario())
    assert calls == [1]


def test_loop_survives_failing_sweep():
    calls = []

    def sweep():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        return 0

    async def scenario():
        sweeper = OTPSweeper(sweep, interval_seconds=0.01)
        sweeper.start()
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    asyncio.run(scenario())
    assert len(calls) >= 2


def test_sweep_expired_otp_sessions_with_memory_backend(monkeypatch):
    monkeypatch.setattr(settings, "OTP_SESSION_BACKEND", "memory")
    repo = get_memory_otp_repo()
    now = utcnow()
    for sid, ttl in [("sweep-old", -10), ("sweep-new", 300)]:
        repo.create(OTPSessionRecord(
            session_id=sid,
            phone="+966501234567",
            code_hash="ab" * 32,
            expires_at=now + timedelta(seconds=ttl),
            created_at=now,
            last_sent_at=now,
        ))

    assert sweep_expired_otp_sessions() >= 1
    assert repo.find_by_session_id("sweep-old", now - timedelta(seconds=60)) is None
    assert repo.find_by_session_id("sweep-new", now) is not None
    repo.delete("sweep-new")
