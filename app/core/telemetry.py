from __future__ import annotations

from pathlib import Path

import duckdb

from app.core.config import get_settings


class TelemetryStore:
    """로그와 동기화 상태를 저장하는 DuckDB 텔레메트리 저장소"""

    _instance: "TelemetryStore | None" = None

    def __new__(cls) -> "TelemetryStore":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._init_db()
        return cls._instance

    def _init_db(self) -> None:
        settings = get_settings()
        Path(settings.duckdb_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = duckdb.connect(settings.duckdb_path)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS logs (
                timestamp TIMESTAMP,
                level VARCHAR,
                event VARCHAR,
                patient_id VARCHAR,
                stage VARCHAR,
                error_code VARCHAR,
                message VARCHAR,
                duration_ms INTEGER,
                record_count INTEGER
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sync_status (
                patient_id VARCHAR,
                last_run_at TIMESTAMP,
                last_success_at TIMESTAMP,
                last_status VARCHAR,
                last_error_code VARCHAR,
                observation_count INTEGER
            )
            """
        )

    def insert_log(self, record: dict) -> None:
        """로그 레코드를 저장

        Args:
            record: 로그 레코드 딕셔너리
        """
        self._conn.execute(
            """
            INSERT INTO logs (timestamp, level, event, patient_id, stage, error_code, message, duration_ms, record_count)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                record.get("timestamp"),
                record.get("level"),
                record.get("event"),
                record.get("patient_id"),
                record.get("stage"),
                record.get("error_code"),
                record.get("message"),
                record.get("duration_ms"),
                record.get("record_count"),
            ],
        )

    def update_status(self, status: dict) -> None:
        """환자별 동기화 상태 레코드를 업서트

        Args:
            status: 상태 레코드 딕셔너리
        """
        self._conn.execute(
            """
            DELETE FROM sync_status WHERE patient_id = ?
            """,
            [status.get("patient_id")],
        )
        self._conn.execute(
            """
            INSERT INTO sync_status (patient_id, last_run_at, last_success_at, last_status, last_error_code, observation_count)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                status.get("patient_id"),
                status.get("last_run_at"),
                status.get("last_success_at"),
                status.get("last_status"),
                status.get("last_error_code"),
                status.get("observation_count"),
            ],
        )

    def query_logs(
        self,
        event: str | None = None,
        patient_id: str | None = None,
        limit: int = 200,
    ) -> list[tuple]:
        """이벤트/환자 기준으로 최근 로그를 조회

        Args:
            event: 이벤트 이름(선택)
            patient_id: 환자 식별자(선택)
            limit: 최대 행 수

        Returns:
            시각순 행 목록
        """
        clauses = []
        params: list = []
        if event:
            clauses.append("event = ?")
            params.append(event)
        if patient_id:
            clauses.append("patient_id = ?")
            params.append(patient_id)
        query = "SELECT * FROM logs"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)
        rows = self._conn.execute(query, params).fetchall()
        return list(reversed(rows))

    def query_status(self) -> list[tuple]:
        """모든 환자 동기화 상태 항목을 조회

        Returns:
            행 목록
        """
        return self._conn.execute(
            "SELECT * FROM sync_status ORDER BY patient_id"
        ).fetchall()
