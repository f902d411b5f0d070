"""Integration adapters for ledgerwatch.

Adapters implement the core ports for Solana RPC, DexScreener, asyncio
scheduling and Telegram delivery.
"""
