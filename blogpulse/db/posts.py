"""Enriched post storage."""

from datetime import datetime
from typing import Dict, List, Optional

from psycopg import Connection

from ..models import Classification, CompanyMatch, EnrichedPost

POST_COLUMNS = (
    "link, title, published_at, author, image, summary, classification, "
    "sentiment_tags, source_id, source_name, is_valid_analysis, last_checked_at"
)


def _post_params(post: EnrichedPost) -> tuple:
    return (
        post.link,
        post.title,
        post.published_at,
        post.author,
        post.image,
        post.summary,
        post.classification.value,
        [tag.value for tag in post.sentiment_tags],
        post.source_id,
        post.source_name,
        post.is_valid_analysis,
        post.last_checked_at,
    )


class PostStorage:
    """Persist enriched posts and their company matches.

    The link is the dedup key; an insert for a stored link is a no-op.
    """

    def links_exist(self, conn: Connection, links: List[str]) -> Dict[str, bool]:
        """Existence map for a batch of links, answered by one query."""
        if not links:
            return {}
        with conn.cursor() as cur:
            cur.execute("SELECT link FROM posts WHERE link = ANY(%s)", (list(links),))
            found = {row["link"] for row in cur.fetchall()}
        return {link: link in found for link in links}

    def _insert_matches(self, cur, post_id: int, matches: List[CompanyMatch]) -> None:
        for match in matches:
            cur.execute(
                """
                INSERT INTO post_companies (
                    post_id, resolved_name, extracted_name, nse_code, bse_code, market_cap, confidence
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (post_id, resolved_name) DO NOTHING
                """,
                (
                    post_id,
                    match.resolved_name,
                    match.extracted_name,
                    match.nse_code,
                    match.bse_code,
                    match.market_cap,
                    match.confidence,
                ),
            )

    def insert_posts(
        self,
        conn: Connection,
        posts: List[EnrichedPost],
        batch_size: int = 100,
    ) -> List[EnrichedPost]:
        """Insert posts in chunks and return the ones actually created.

        Each chunk is committed on its own. Posts whose link already exists
        are skipped and left out of the result.
        """
        inserted: List[EnrichedPost] = []

        for start in range(0, len(posts), batch_size):
            chunk = posts[start:start + batch_size]
            with conn.cursor() as cur:
                for post in chunk:
                    cur.execute(
                        f"""
                        INSERT INTO posts ({POST_COLUMNS})
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                        ON CONFLICT (link) DO NOTHING
                        RETURNING id, created_at
                        """,
                        _post_params(post),
                    )
                    row = cur.fetchone()
                    if row is None:
                        continue
                    self._insert_matches(cur, row["id"], post.company_matches)
                    inserted.append(
                        post.model_copy(update={"id": row["id"], "created_at": row["created_at"]})
                    )
            conn.commit()

        return inserted

    def update_enrichment(self, conn: Connection, post: EnrichedPost) -> None:
        """Replace the enrichment of a stored post, keyed by link."""
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE posts
                SET summary = %s, classification = %s, sentiment_tags = %s,
                    is_valid_analysis = %s, last_checked_at = %s
                WHERE link = %s
                RETURNING id
                """,
                (
                    post.summary,
                    post.classification.value,
                    [tag.value for tag in post.sentiment_tags],
                    post.is_valid_analysis,
                    post.last_checked_at,
                    post.link,
                ),
            )
            row = cur.fetchone()
            if row is None:
                raise ValueError(f"No stored post with link {post.link}")
            cur.execute("DELETE FROM post_companies WHERE post_id = %s", (row["id"],))
            self._insert_matches(cur, row["id"], post.company_matches)
        conn.commit()

    def _load_matches(self, conn: Connection, post_ids: List[int]) -> Dict[int, List[CompanyMatch]]:
        matches: Dict[int, List[CompanyMatch]] = {pid: [] for pid in post_ids}
        if not post_ids:
            return matches
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT post_id, resolved_name, extracted_name, nse_code, bse_code, market_cap, confidence
                FROM post_companies
                WHERE post_id = ANY(%s)
                ORDER BY post_id, confidence DESC
                """,
                (post_ids,),
            )
            for row in cur.fetchall():
                post_id = row.pop("post_id")
                matches[post_id].append(CompanyMatch.model_validate(row))
        return matches

    def _hydrate(self, conn: Connection, rows: List[dict]) -> List[EnrichedPost]:
        matches = self._load_matches(conn, [row["id"] for row in rows])
        return [
            EnrichedPost.model_validate({**row, "company_matches": matches[row["id"]]})
            for row in rows
        ]

    def get_by_link(self, conn: Connection, link: str) -> Optional[EnrichedPost]:
        """Get a stored post by link."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM posts WHERE link = %s", (link,))
            row = cur.fetchone()
        if row is None:
            return None
        return self._hydrate(conn, [row])[0]

    def list_posts(
        self,
        conn: Connection,
        classification: Optional[Classification] = None,
        before: Optional[datetime] = None,
        limit: int = 20,
    ) -> List[EnrichedPost]:
        """Newest posts first, paged by publish time."""
        clauses = []
        params: list = []
        if classification is not None:
            clauses.append("classification = %s")
            params.append(classification.value)
        if before is not None:
            clauses.append("published_at < %s")
            params.append(before)

        query = "SELECT * FROM posts"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY published_at DESC, id DESC LIMIT %s"
        params.append(limit)

        with conn.cursor() as cur:
            cur.execute(query, params)
            rows = cur.fetchall()
        return self._hydrate(conn, rows)

    def posts_for_company(self, conn: Connection, resolved_name: str, limit: int = 20) -> List[EnrichedPost]:
        """Posts that mention a resolved company, newest first."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT p.*
                FROM posts p
                JOIN post_companies pc ON pc.post_id = p.id
                WHERE pc.resolved_name = %s
                ORDER BY p.published_at DESC, p.id DESC
                LIMIT %s
                """,
                (resolved_name, limit),
            )
            rows = cur.fetchall()
        return self._hydrate(conn, rows)
