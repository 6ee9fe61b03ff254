"""
Bot

Telegram webhook server, update handling, and command dispatch.
"""
