"""Core domain package for ledgerwatch.

Core contains transaction resolution, classification, holder tracking and
alerting logic without any Solana RPC, market data or Telegram specific
code, keeping the business logic portable.
"""
