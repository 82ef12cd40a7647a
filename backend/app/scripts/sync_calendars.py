from __future__ import annotations

import argparse
import asyncio

from app.core.config import settings
from app.db.session import SessionLocal, init_db
from app.domain.calendar import parse_ymd
from app.services.ical_service import IcalService, SyncResult, sync_all_feeds


def _print_result(result: SyncResult) -> None:
    if result.success:
        label = "304 Not Modified" if result.not_modified else f"{result.period_count}개 차단 기간"
        print(
            f"  ✅ feed={result.feed_id}: {label} "
            f"(이벤트 {result.raw_event_count}개 중 {result.event_count}개 사용)"
        )
        if result.filter_reasons:
            print(f"     필터링: {result.filter_reasons}")
    else:
        print(f"  ❌ feed={result.feed_id}: {result.error}")


async def run_sync(*, feed_id: int | None, today: str | None) -> None:
    today_day = parse_ymd(today) if today else settings.today()

    print(
        "\n=== iCal 피드 동기화 시작 ===\n"
        f"- feed_id : {feed_id if feed_id is not None else '(동기화 대상 전체)'}\n"
        f"- today   : {today_day}\n"
    )

    if feed_id is not None:
        db = SessionLocal()
        try:
            result = await IcalService(db).sync_feed(feed_id, today_day)
        finally:
            db.close()
        _print_result(result)
    else:
        sweep = await sync_all_feeds(today=today_day)
        for result in sweep.results:
            _print_result(result)
        print(f"\n총 {sweep.total}개 중 성공 {sweep.succeeded}개, 실패 {sweep.failed}개")

    print("\n=== iCal 피드 동기화 종료 ===\n")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="숙소 iCal 피드를 가져와 차단 기간을 갱신하는 동기화 스크립트",
    )
    parser.add_argument(
        "--feed-id",
        type=int,
        default=None,
        help="특정 피드만 동기화 (생략하면 동기화 대상 피드 전체)",
    )
    parser.add_argument(
        "--today",
        type=str,
        default=None,
        help="기준일 YYYY-MM-DD (기본: CALENDAR_TIMEZONE 기준 오늘)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    init_db()
    asyncio.run(run_sync(feed_id=args.feed_id, today=args.today))


if __name__ == "__main__":
    main()
