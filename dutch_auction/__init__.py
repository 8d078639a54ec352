"""
Dutch Auction Settlement Engine

Sells token balances for a single settlement token through time-decaying
Dutch auctions:
- WAD/RAY fixed-point math with 256-bit overflow checks
- Hourly-halving price curve with per-minute interpolation
- Per-token auction registry with kick/take lifecycle and optional hooks
- SQLite persistence and a click CLI
"""

__version__ = "0.1.0"
