# meetrecorder/scheduler.py

import logging
import atexit

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .auth_state import profile_mirror
from .config import LIFECYCLE_INTERVAL_MINUTES, LIFECYCLE_AUTO_ADVANCE, WATCH_SWEEP_MINUTES
from .database import collection, snapshot_to_dict, utcnow
from .recording_service import (
    RECORDINGS, should_start_session, should_end_session,
    start_recording_session, end_recording_session
)
from .utils import should_recording_be_available

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(
    timezone='UTC',
    job_defaults={
        'coalesce': True,
        'max_instances': 1
    }
)


def sync_recording_lifecycle(now=None, auto_advance=None):
    """예정 시간이 된 세션 시작 / 종료 시간이 지난 세션 종료

    auto_advance 가 꺼져 있으면 (기본값) 대상만 로그로 남기고 문서는 바꾸지 않습니다.
    sessionEndTime 이 없는 녹화는 자동으로 시작/종료하지 않습니다.
    """
    now = now or utcnow()
    if auto_advance is None:
        auto_advance = LIFECYCLE_AUTO_ADVANCE
    counts = {
        'checked': 0, 'started': 0, 'ended': 0, 'dueStart': 0, 'dueEnd': 0,
        'skipped': 0, 'awaitingLink': 0, 'failed': 0
    }

    logger.info(f"🔄 녹화 상태 동기화 시작... (자동 전환: {auto_advance})")
    docs = collection(RECORDINGS) \
        .where('status', 'in', ['scheduled', 'live', 'completed']) \
        .stream()

    for doc in docs:
        counts['checked'] += 1
        recording = snapshot_to_dict(doc)
        try:
            if recording.get('status') in ('scheduled', 'live') and not recording.get('sessionEndTime'):
                counts['skipped'] += 1
                logger.debug(f"종료 시간 없음, 자동 전환 제외: {doc.id}")
            elif should_start_session(recording, now):
                if auto_advance:
                    start_recording_session(doc.id)
                    counts['started'] += 1
                else:
                    counts['dueStart'] += 1
                    logger.info(f"⏰ 시작 예정 시간 경과: {doc.id} ({recording.get('instructorEmail')})")
            elif should_end_session(recording, now):
                if auto_advance:
                    end_recording_session(doc.id)
                    counts['ended'] += 1
                else:
                    counts['dueEnd'] += 1
                    logger.info(f"⏰ 종료 예정 시간 경과: {doc.id} ({recording.get('instructorEmail')})")
            elif recording.get('status') == 'completed' and not recording.get('recordingUrl') \
                    and should_recording_be_available(recording, now):
                counts['awaitingLink'] += 1
                logger.info(f"🔗 Drive 링크 등록 대기: {doc.id} ({recording.get('instructorEmail')})")
        except Exception as e:
            counts['failed'] += 1
            logger.error(f"❌ 문서 {doc.id} 상태 동기화 실패: {e}")

    logger.info(
        f"🎉 녹화 상태 동기화 완료: 시작 {counts['started']}, 종료 {counts['ended']}, "
        f"시작 대기 {counts['dueStart']}, 종료 대기 {counts['dueEnd']}, "
        f"링크 대기 {counts['awaitingLink']} / {counts['checked']} 개"
    )
    return counts


def _run_lifecycle_job():
    try:
        sync_recording_lifecycle()
    except Exception as e:
        logger.error(f"❌ 녹화 상태 동기화 작업 중 오류: {e}")


def _run_watch_sweep_job():
    try:
        profile_mirror.evict_expired()
    except Exception as e:
        logger.error(f"❌ 프로필 구독 정리 작업 중 오류: {e}")


def start_scheduler():
    """스케줄러 시작"""
    try:
        scheduler.add_job(
            func=_run_lifecycle_job,
            trigger=IntervalTrigger(minutes=LIFECYCLE_INTERVAL_MINUTES),
            id='sync_recording_lifecycle',
            name='녹화 상태 자동 동기화',
            replace_existing=True
        )
        scheduler.add_job(
            func=_run_watch_sweep_job,
            trigger=IntervalTrigger(minutes=WATCH_SWEEP_MINUTES),
            id='evict_expired_watches',
            name='만료된 프로필 구독 정리',
            replace_existing=True
        )

        scheduler.start()
        logger.info("🚀 백그라운드 스케줄러가 시작되었습니다.")

        atexit.register(lambda: scheduler.shutdown())

    except Exception as e:
        logger.error(f"❌ 스케줄러 시작 실패: {e}")


def get_scheduler_status():
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        })
    return {'running': scheduler.running, 'jobs': jobs}
