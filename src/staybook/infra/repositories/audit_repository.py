"""Audit repository - append-only trail of stay mutations.

Audit rows are written on the caller's cursor; a failed audit insert
propagates and rolls back the mutation it describes.
"""

from __future__ import annotations

from psycopg2.extensions import cursor as PgCursor

from staybook.domain.audit import AuditAction, AuditRecord


def record_audit(
    cur: PgCursor,
    *,
    stay_id: int,
    booking_number: str,
    action: AuditAction,
    description: str,
    old_value: str | None = None,
    new_value: str | None = None,
    performed_by: int | None = None,
) -> int:
    cur.execute(
        """
        INSERT INTO stay_audit_log (
            stay_id, booking_number, action_type, action_description,
            old_value, new_value, performed_by
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id
        """,
        (
            stay_id,
            booking_number,
            action.value,
            description,
            old_value,
            new_value,
            performed_by,
        ),
    )
    return cur.fetchone()[0]


def list_audit_records(
    cur: PgCursor, stay_id: int, *, limit: int = 200
) -> list[AuditRecord]:
    """Audit trail of a stay, newest first."""
    cur.execute(
        """
        SELECT id, stay_id, booking_number, action_type, action_description,
               old_value, new_value, performed_by, performed_at
        FROM stay_audit_log
        WHERE stay_id = %s
        ORDER BY performed_at DESC, id DESC
        LIMIT %s
        """,
        (stay_id, limit),
    )
    return [
        AuditRecord(
            id=r[0],
            stay_id=r[1],
            booking_number=r[2],
            action_type=r[3],
            description=r[4],
            old_value=r[5],
            new_value=r[6],
            performed_by=r[7],
            performed_at=r[8],
        )
        for r in cur.fetchall()
    ]
