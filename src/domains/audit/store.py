# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit record storage.

Stores append records and delete them by age. There is no way to change a
record once it has been written.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy import Select, delete, func, select

from src.domains.audit.models import (
    ActionCount,
    AuditOutcome,
    AuditQuery,
    AuditRecord,
    AuditStats,
    DailyCount,
    SubjectCount,
    summarize_records,
)
from src.infrastructure.database.connection import Database
from src.infrastructure.database.models import AuditLogModel
from src.utils.datetime import ensure_utc

TOP_N = 10


class AuditStore(Protocol):
    """Backing store for audit records."""

    async def insert(self, record: AuditRecord) -> None: ...

    async def query(self, filters: AuditQuery) -> tuple[list[AuditRecord], int]: ...

    async def stats(self, organization_id: str, since: datetime) -> AuditStats: ...

    async def delete_older_than(self, cutoff: datetime) -> int: ...


def _matches(record: AuditRecord, filters: AuditQuery) -> bool:
    if record.organization_id != filters.organization_id:
        return False
    if filters.subject_id is not None and record.subject_id != filters.subject_id:
        return False
    if filters.action is not None and record.action != filters.action:
        return False
    if filters.resource_type is not None and record.resource_type != filters.resource_type:
        return False
    if filters.outcome is not None and record.outcome != filters.outcome:
        return False
    if filters.start is not None and record.timestamp < filters.start:
        return False
    if filters.end is not None and record.timestamp > filters.end:
        return False
    return True


class InMemoryAuditStore:
    """Process-local audit store for tests and development."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    async def insert(self, record: AuditRecord) -> None:
        self._records.append(record)

    async def query(self, filters: AuditQuery) -> tuple[list[AuditRecord], int]:
        matched = [r for r in self._records if _matches(r, filters)]
        matched.sort(key=lambda r: r.timestamp, reverse=True)
        end = None if filters.limit is None else filters.offset + filters.limit
        return matched[filters.offset : end], len(matched)

    async def stats(self, organization_id: str, since: datetime) -> AuditStats:
        records = [r for r in self._records if r.organization_id == organization_id]
        return summarize_records(records, since, top_n=TOP_N)

    async def delete_older_than(self, cutoff: datetime) -> int:
        kept = [r for r in self._records if r.timestamp >= cutoff]
        deleted = len(self._records) - len(kept)
        self._records = kept
        return deleted


class SQLAlchemyAuditStore:
    """Audit store on the audit_logs table.

    Every read statement carries an organization_id predicate.

    Attributes:
        _database: Connected database.
    """

    def __init__(self, database: Database) -> None:
        self._database = database

    @staticmethod
    def _to_model(record: AuditRecord) -> AuditLogModel:
        return AuditLogModel(
            id=record.id,
            timestamp=ensure_utc(record.timestamp),
            organization_id=record.organization_id,
            user_id=record.subject_id,
            action=record.action,
            resource_type=record.resource_type,
            resource_id=record.resource_id,
            details=record.details,
            ip_address=record.client_ip,
            user_agent=record.client_agent,
            outcome=record.outcome.value,
        )

    @staticmethod
    def _to_record(row: AuditLogModel) -> AuditRecord:
        return AuditRecord(
            id=row.id,
            timestamp=ensure_utc(row.timestamp),
            subject_id=row.user_id,
            organization_id=row.organization_id,
            action=row.action,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            outcome=AuditOutcome(row.outcome),
            details=row.details or {},
            client_ip=row.ip_address,
            client_agent=row.user_agent,
        )

    @staticmethod
    def _apply_filters(stmt: Select, filters: AuditQuery) -> Select:
        stmt = stmt.where(AuditLogModel.organization_id == filters.organization_id)
        if filters.subject_id is not None:
            stmt = stmt.where(AuditLogModel.user_id == filters.subject_id)
        if filters.action is not None:
            stmt = stmt.where(AuditLogModel.action == filters.action)
        if filters.resource_type is not None:
            stmt = stmt.where(AuditLogModel.resource_type == filters.resource_type)
        if filters.outcome is not None:
            stmt = stmt.where(AuditLogModel.outcome == filters.outcome.value)
        if filters.start is not None:
            stmt = stmt.where(AuditLogModel.timestamp >= ensure_utc(filters.start))
        if filters.end is not None:
            stmt = stmt.where(AuditLogModel.timestamp <= ensure_utc(filters.end))
        return stmt

    async def insert(self, record: AuditRecord) -> None:
        async with self._database.session() as session:
            session.add(self._to_model(record))

    async def query(self, filters: AuditQuery) -> tuple[list[AuditRecord], int]:
        count_stmt = self._apply_filters(select(func.count()).select_from(AuditLogModel), filters)
        rows_stmt = (
            self._apply_filters(select(AuditLogModel), filters)
            .order_by(AuditLogModel.timestamp.desc(), AuditLogModel.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
        )

        async with self._database.session() as session:
            total = (await session.execute(count_stmt)).scalar_one()
            rows = (await session.execute(rows_stmt)).scalars().all()

        return [self._to_record(row) for row in rows], total

    async def stats(self, organization_id: str, since: datetime) -> AuditStats:
        org_filter = AuditLogModel.organization_id == organization_id

        outcome_stmt = (
            select(AuditLogModel.outcome, func.count())
            .where(org_filter)
            .group_by(AuditLogModel.outcome)
        )
        action_count = func.count().label("count")
        action_stmt = (
            select(AuditLogModel.action, action_count)
            .where(org_filter)
            .group_by(AuditLogModel.action)
            .order_by(action_count.desc(), AuditLogModel.action)
            .limit(TOP_N)
        )
        subject_count = func.count().label("count")
        subject_stmt = (
            select(AuditLogModel.user_id, subject_count)
            .where(org_filter)
            .group_by(AuditLogModel.user_id)
            .order_by(subject_count.desc(), AuditLogModel.user_id)
            .limit(TOP_N)
        )
        daily_stmt = select(AuditLogModel.timestamp).where(
            org_filter, AuditLogModel.timestamp >= ensure_utc(since)
        )

        async with self._database.session() as session:
            outcomes = dict((await session.execute(outcome_stmt)).all())
            actions = (await session.execute(action_stmt)).all()
            subjects = (await session.execute(subject_stmt)).all()
            timestamps = (await session.execute(daily_stmt)).scalars().all()

        daily: dict[str, int] = {}
        for timestamp in timestamps:
            day = ensure_utc(timestamp).date().isoformat()
            daily[day] = daily.get(day, 0) + 1

        return AuditStats(
            total=sum(outcomes.values()),
            success_count=outcomes.get(AuditOutcome.SUCCESS.value, 0),
            failure_count=outcomes.get(AuditOutcome.FAILURE.value, 0),
            error_count=outcomes.get(AuditOutcome.ERROR.value, 0),
            top_actions=[ActionCount(action=a, count=c) for a, c in actions],
            top_subjects=[SubjectCount(subject_id=s, count=c) for s, c in subjects],
            daily_activity=[DailyCount(date=d, count=c) for d, c in sorted(daily.items())],
        )

    async def delete_older_than(self, cutoff: datetime) -> int:
        stmt = delete(AuditLogModel).where(AuditLogModel.timestamp < ensure_utc(cutoff))
        async with self._database.session() as session:
            result = await session.execute(stmt)
        return result.rowcount or 0
