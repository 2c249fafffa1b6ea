"""SQLite-based credit ledger and usage log."""

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from ..errors import AccountNotFoundError
from .models import Account, UsageLogEntry

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    credits INTEGER NOT NULL DEFAULT 0 CHECK (credits >= 0),
    created_at TEXT,
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS api_keys (
    key TEXT PRIMARY KEY,
    account_id TEXT NOT NULL REFERENCES accounts(id) ON DELETE CASCADE,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS usage_logs (
    id TEXT PRIMARY KEY,
    account_id TEXT NOT NULL,
    title TEXT,
    model_identifier TEXT,
    word_count INTEGER NOT NULL,
    credits_charged INTEGER NOT NULL,
    underfunded INTEGER NOT NULL DEFAULT 0,
    input_text TEXT NOT NULL DEFAULT '',
    output_text TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_usage_logs_account ON usage_logs(account_id, created_at);
CREATE INDEX IF NOT EXISTS idx_api_keys_account ON api_keys(account_id);
"""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ChargeResult:
    """Result of a committed charge transaction."""

    account_id: str
    balance_before: int
    balance_after: int
    cost: int
    underfunded: bool
    usage_log_id: str


class CreditLedger:
    """Per-account credit balances with an append-only usage log.

    Every operation opens its own connection so that concurrent requests are
    isolated by SQLite's own locking. Mutations run inside ``BEGIN IMMEDIATE``
    transactions, which take the write lock before the balance is read.
    """

    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        self.db_path = Path(db_path)
        self.busy_timeout = busy_timeout

    async def initialize(self):
        """Create the database file and tables."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.executescript(SCHEMA)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(
            str(self.db_path), timeout=self.busy_timeout, isolation_level=None
        ) as db:
            yield db

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._connect() as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            else:
                await db.execute("COMMIT")

    # Account operations
    async def create_account(self, account_id: str, credits: int = 0) -> Account:
        """Create an account with an initial balance."""
        if credits < 0:
            raise ValueError("Initial credits cannot be negative")
        now = _utc_now()
        async with self._transaction() as db:
            await db.execute(
                "INSERT INTO accounts (id, credits, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (account_id, credits, now, now),
            )
        return Account(id=account_id, credits=credits)

    async def get_account(self, account_id: str) -> Optional[Account]:
        """Get an account by ID."""
        async with self._connect() as db:
            async with db.execute(
                "SELECT id, credits, created_at, updated_at FROM accounts WHERE id = ?",
                (account_id,),
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            return None
        return Account(id=row[0], credits=row[1], created_at=row[2], updated_at=row[3])

    async def get_balance(self, account_id: str) -> Optional[int]:
        """Current balance, or None for an unknown account."""
        account = await self.get_account(account_id)
        return account.credits if account else None

    async def grant(self, account_id: str, credits: int) -> int:
        """Add credits to an account and return the new balance."""
        if credits <= 0:
            raise ValueError("Granted credits must be positive")
        async with self._transaction() as db:
            cursor = await db.execute(
                "UPDATE accounts SET credits = credits + ?, updated_at = ? WHERE id = ?",
                (credits, _utc_now(), account_id),
            )
            if cursor.rowcount == 0:
                raise AccountNotFoundError(account_id)
            async with db.execute(
                "SELECT credits FROM accounts WHERE id = ?", (account_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]

    async def reset_all_credits(self, credits: int) -> int:
        """Set every account's balance; returns the number of accounts updated."""
        if credits < 0:
            raise ValueError("Credits cannot be negative")
        async with self._transaction() as db:
            cursor = await db.execute(
                "UPDATE accounts SET credits = ?, updated_at = ?", (credits, _utc_now())
            )
            return cursor.rowcount

    # API key operations
    async def register_api_key(self, key: str, account_id: str):
        """Associate an API key with an account."""
        async with self._transaction() as db:
            await db.execute(
                "INSERT OR REPLACE INTO api_keys (key, account_id, created_at) VALUES (?, ?, ?)",
                (key, account_id, _utc_now()),
            )

    async def resolve_api_key(self, key: str) -> Optional[str]:
        """Account ID for an API key, or None."""
        async with self._connect() as db:
            async with db.execute(
                "SELECT account_id FROM api_keys WHERE key = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0] if row else None

    # Billing
    async def charge(
        self,
        account_id: str,
        cost: int,
        title: str,
        model_identifier: str,
        word_count: int,
        input_text: str = "",
        output_text: str = "",
    ) -> ChargeResult:
        """Debit an account and append a usage row in one transaction.

        If the balance cannot cover ``cost`` the balance is left unchanged and
        the usage row is still written, tagged as underfunded. The row keeps
        the source and rewritten text.

        Raises:
            AccountNotFoundError: If the account does not exist (nothing written)
        """
        if cost < 0:
            raise ValueError("Cost cannot be negative")

        usage_log_id = str(uuid.uuid4())
        now = _utc_now()

        async with self._transaction() as db:
            async with db.execute(
                "SELECT credits FROM accounts WHERE id = ?", (account_id,)
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                raise AccountNotFoundError(account_id)

            balance = row[0]
            underfunded = balance < cost
            charged = 0 if underfunded else cost

            if not underfunded:
                await db.execute(
                    "UPDATE accounts SET credits = credits - ?, updated_at = ? WHERE id = ?",
                    (cost, now, account_id),
                )

            await db.execute(
                """
                INSERT INTO usage_logs
                (id, account_id, title, model_identifier, word_count, credits_charged,
                 underfunded, input_text, output_text, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    usage_log_id,
                    account_id,
                    title,
                    model_identifier,
                    word_count,
                    charged,
                    1 if underfunded else 0,
                    input_text,
                    output_text,
                    now,
                ),
            )

        return ChargeResult(
            account_id=account_id,
            balance_before=balance,
            balance_after=balance - charged,
            cost=cost,
            underfunded=underfunded,
            usage_log_id=usage_log_id,
        )

    async def get_usage_logs(self, account_id: str, limit: int = 50) -> list[UsageLogEntry]:
        """Usage log entries for an account, newest first."""
        async with self._connect() as db:
            async with db.execute(
                """
                SELECT id, account_id, title, model_identifier, word_count,
                       credits_charged, underfunded, input_text, output_text, created_at
                FROM usage_logs WHERE account_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?
                """,
                (account_id, limit),
            ) as cursor:
                rows = await cursor.fetchall()
        return [self._row_to_usage_log(row) for row in rows]

    def _row_to_usage_log(self, row) -> UsageLogEntry:
        return UsageLogEntry(
            id=row[0],
            account_id=row[1],
            title=row[2] or "",
            model_identifier=row[3] or "",
            word_count=row[4],
            credits_charged=row[5],
            underfunded=bool(row[6]),
            input_text=row[7] or "",
            output_text=row[8] or "",
            created_at=datetime.fromisoformat(row[9]),
        )
