"""Human-readable document numbers: <PREFIX>-YYYYMM-NNN"""

from datetime import datetime

from sqlalchemy import Integer, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession


def month_prefix(prefix: str, when: datetime) -> str:
    return f"{prefix}-{when.strftime('%Y%m')}-"


def format_number(prefix: str, when: datetime, sequence: int) -> str:
    return f"{month_prefix(prefix, when)}{sequence:03d}"


async def next_number(db: AsyncSession, column, prefix: str, when: datetime) -> str:
    """
    Next free number for the month of ``when`` (e.g. QT-202610-007).
    Only numbers with a purely numeric suffix are considered. The unique
    constraint on ``column`` rejects a duplicate if two writers race.
    """
    month = month_prefix(prefix, when)
    result = await db.execute(
        select(func.max(cast(func.substring(column, len(month) + 1), Integer))).where(
            column.op("~")(f"^{month}\\d+$")
        )
    )
    max_seq = result.scalar_one_or_none()
    return format_number(prefix, when, (max_seq or 0) + 1)
