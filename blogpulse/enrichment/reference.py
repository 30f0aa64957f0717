"""Build the reference company list from exchange instrument dumps."""

import csv
import io
from typing import Dict, Iterable, List, Mapping, Optional

import httpx
from rich.console import Console

from ..ingestion.http import BROWSER_HEADERS
from ..models import CompanyReference

console = Console()

INSTRUMENTS_URL = "https://api.kite.trade/instruments"
NSE_EQUITY_URL = "https://archives.nseindia.com/content/equities/EQUITY_L.csv"

EXCLUDED_NAMES = {"NIPPON INDIA MUTUAL FUND"}


def search_tokens(name: str) -> List[str]:
    return [token for token in name.upper().split() if token]


def read_csv(text: str) -> List[Dict[str, str]]:
    """Rows of a CSV document with header names stripped."""
    reader = csv.DictReader(io.StringIO(text))
    return [{(k or "").strip(): (v or "").strip() for k, v in row.items()} for row in reader]


def isin_map(nse_rows: Iterable[Mapping[str, str]]) -> Dict[str, str]:
    """SYMBOL -> ISIN for EQ-series rows of the NSE equity list."""
    isins = {}
    for row in nse_rows:
        symbol = row.get("SYMBOL")
        isin = row.get("ISIN NUMBER")
        if row.get("SERIES") == "EQ" and symbol and isin:
            isins[symbol] = isin
    return isins


def _excluded(name: str) -> bool:
    return not name or "%" in name or name in EXCLUDED_NAMES or name.startswith("GOI TBILL")


def build_reference(
    instruments: Iterable[Mapping[str, str]],
    nse_rows: Iterable[Mapping[str, str]] = (),
) -> List[CompanyReference]:
    """Merge NSE and BSE equity rows per trading symbol.

    The NSE row is primary; the BSE exchange token becomes ``bse_code``.
    Bonds, T-bills, fund units and INAV rows are dropped.
    """
    isins = isin_map(nse_rows)
    grouped: Dict[str, Dict[str, Mapping[str, str]]] = {}

    for row in instruments:
        symbol = row.get("tradingsymbol", "")
        if (
            row.get("exchange") not in ("NSE", "BSE")
            or row.get("instrument_type") != "EQ"
            or not symbol
            or "INAV" in symbol
        ):
            continue
        grouped.setdefault(symbol, {})[row["exchange"]] = row

    companies = []
    for symbol, rows in grouped.items():
        primary = rows.get("NSE") or rows["BSE"]
        name = (primary.get("name") or "").strip()
        if _excluded(name):
            continue
        bse_row = rows.get("BSE")
        companies.append(
            CompanyReference(
                name=name,
                nse_code=symbol,
                bse_code=(bse_row.get("exchange_token") or None) if bse_row else None,
                exchange=primary["exchange"],
                instrument_token=primary.get("instrument_token") or None,
                isin=isins.get(symbol),
                search_tokens=search_tokens(name),
            )
        )

    return companies


def download_reference(
    timeout: float = 60.0,
    transport: Optional[httpx.BaseTransport] = None,
) -> List[CompanyReference]:
    """Download both dumps and build the reference list.

    The instrument dump is required; a failed NSE download only loses ISINs.
    """
    with httpx.Client(
        timeout=timeout,
        headers=BROWSER_HEADERS,
        follow_redirects=True,
        transport=transport,
    ) as client:
        response = client.get(INSTRUMENTS_URL)
        response.raise_for_status()
        instruments = read_csv(response.text)
        console.print(f"Downloaded {len(instruments)} instruments")

        nse_rows: List[Dict[str, str]] = []
        try:
            response = client.get(NSE_EQUITY_URL)
            response.raise_for_status()
            nse_rows = read_csv(response.text)
        except httpx.HTTPError as e:
            console.print(f"[yellow]NSE equity list unavailable, skipping ISINs: {e}[/yellow]")

    companies = build_reference(instruments, nse_rows)
    matched = sum(1 for c in companies if c.isin)
    console.print(f"Built {len(companies)} companies ({matched} with ISIN)")
    return companies
