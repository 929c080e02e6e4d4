# Claim Server package initializer
# Makes `claim_server` a proper package so `python -m apps.services.claim_server`
# and imports like `from apps.services.claim_server.app import create_app` work.
#
# Keep this file minimal. Importing the app here would build it at import time.

"""Claim Server package - x402 reward claim service."""
