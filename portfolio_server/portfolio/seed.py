"""Demo portfolio served until a user supplies their own holdings."""

from __future__ import annotations

from portfolio_server.portfolio.metrics import create_holding, recompute
from portfolio_server.portfolio.models import Holding

# (particulars, symbol, purchase price, quantity, sector)
DEMO_POSITIONS: tuple[tuple[str, str, float, int, str], ...] = (
    ("HDFC Bank", "HDFCBANK", 1490.0, 50, "Financial Sector"),
    ("Bajaj Finance", "BAJFINANCE", 6466.0, 15, "Financial Sector"),
    ("ICICI Bank", "ICICIBANK", 780.0, 84, "Financial Sector"),
    ("Bajaj Housing Finance", "BAJAJHFL", 130.0, 504, "Financial Sector"),
    ("Affle India", "AFFLE", 1151.0, 50, "Tech Sector"),
    ("LTI Mindtree", "LTIM", 4775.0, 16, "Tech Sector"),
    ("KPIT Technologies", "KPITTECH", 672.0, 61, "Tech Sector"),
    ("Tata Technologies", "TATATECH", 1072.0, 63, "Tech Sector"),
    ("Infosys", "INFY", 1647.0, 20, "Tech Sector"),
    ("Tata Consultancy Services", "TCS", 3300.0, 10, "Tech Sector"),
    ("Dmart", "DMART", 3777.0, 27, "Consumer"),
    ("Tata Consumer", "TATACONSUM", 845.0, 90, "Consumer"),
    ("Pidilite Industries", "PIDILITIND", 2376.0, 36, "Consumer"),
    ("Tata Power", "TATAPOWER", 224.0, 225, "Power"),
    ("Suzlon Energy", "SUZLON", 44.0, 450, "Power"),
    ("Astral", "ASTRAL", 1517.0, 56, "Pipe Sector"),
    ("Polycab India", "POLYCAB", 2818.0, 28, "Pipe Sector"),
    ("Clean Science", "CLEAN", 1610.0, 32, "Others"),
    ("Deepak Nitrite", "DEEPAKNTR", 2248.0, 27, "Others"),
)


def demo_holdings() -> list[Holding]:
    holdings = [
        create_holding(
            id=index,
            particulars=particulars,
            symbol=symbol,
            purchase_price=purchase_price,
            quantity=quantity,
            sector=sector,
        )
        for index, (particulars, symbol, purchase_price, quantity, sector) in enumerate(DEMO_POSITIONS, start=1)
    ]
    return recompute(holdings)
