"""Reference company list storage."""

from datetime import datetime
from typing import List, Optional

from psycopg import Connection

from ..models import CompanyReference


def symbol_key(company: CompanyReference) -> str:
    """Stable identity of a listed instrument across refreshes."""
    if company.nse_code:
        return f"NSE:{company.nse_code.upper()}"
    if company.bse_code:
        return f"BSE:{company.bse_code.upper()}"
    if company.isin:
        return f"ISIN:{company.isin.upper()}"
    raise ValueError(f"Company {company.name} has no exchange code")


class CompanyStorage:
    """Load and maintain the reference company list."""

    def load_reference(self, conn: Connection) -> List[CompanyReference]:
        """All reference companies, for building a resolver."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM companies ORDER BY name")
            return [CompanyReference.model_validate(row) for row in cur.fetchall()]

    def count(self, conn: Connection) -> dict:
        """Totals for the reference list and the enrichment queue."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT COUNT(*) AS total,
                       COUNT(*) FILTER (WHERE NOT market_cap_checked) AS unchecked,
                       COUNT(market_cap) AS with_market_cap
                FROM companies
                """
            )
            return dict(cur.fetchone())

    def find(self, conn: Connection, query: str, limit: int = 10) -> List[CompanyReference]:
        """Companies whose name or code contains the query."""
        pattern = f"%{query}%"
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM companies
                WHERE name ILIKE %s OR nse_code ILIKE %s OR bse_code ILIKE %s
                ORDER BY market_cap DESC NULLS LAST
                LIMIT %s
                """,
                (pattern, pattern, pattern, limit),
            )
            return [CompanyReference.model_validate(row) for row in cur.fetchall()]

    def fetch_unchecked_batch(
        self,
        conn: Connection,
        after: Optional[datetime],
        limit: int,
    ) -> List[CompanyReference]:
        """Next page of unchecked companies after the cursor, oldest first."""
        with conn.cursor() as cur:
            if after is None:
                cur.execute(
                    """
                    SELECT * FROM companies
                    WHERE NOT market_cap_checked
                    ORDER BY created_at, id
                    LIMIT %s
                    """,
                    (limit,),
                )
            else:
                cur.execute(
                    """
                    SELECT * FROM companies
                    WHERE NOT market_cap_checked AND created_at >= %s
                    ORDER BY created_at, id
                    LIMIT %s
                    """,
                    (after, limit),
                )
            return [CompanyReference.model_validate(row) for row in cur.fetchall()]

    def update_market_cap(self, conn: Connection, company_id: int, market_cap: Optional[float]) -> None:
        """Mark a company checked; a missing value keeps the stored one."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE companies
                SET market_cap = COALESCE(%s, market_cap), market_cap_checked = TRUE
                WHERE id = %s
                """,
                (market_cap, company_id),
            )
        conn.commit()

    def upsert_companies(self, conn: Connection, companies: List[CompanyReference]) -> int:
        """Insert or refresh reference rows; enrichment state is preserved."""
        with conn.cursor() as cur:
            for company in companies:
                cur.execute(
                    """
                    INSERT INTO companies (
                        symbol_key, name, nse_code, bse_code, exchange,
                        instrument_token, isin, search_tokens
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (symbol_key) DO UPDATE SET
                        name = EXCLUDED.name,
                        bse_code = COALESCE(EXCLUDED.bse_code, companies.bse_code),
                        exchange = EXCLUDED.exchange,
                        instrument_token = EXCLUDED.instrument_token,
                        isin = COALESCE(EXCLUDED.isin, companies.isin),
                        search_tokens = EXCLUDED.search_tokens
                    """,
                    (
                        symbol_key(company),
                        company.name,
                        company.nse_code,
                        company.bse_code,
                        company.exchange,
                        company.instrument_token,
                        company.isin,
                        company.search_tokens,
                    ),
                )
        conn.commit()
        return len(companies)

    def reset_market_cap_checks(self, conn: Connection) -> int:
        """Queue every company for enrichment again."""
        with conn.cursor() as cur:
            cur.execute("UPDATE companies SET market_cap_checked = FALSE WHERE market_cap_checked")
            count = cur.rowcount
        conn.commit()
        return count
