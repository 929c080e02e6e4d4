"""HTTP header names shared by the claim server and the claim agent."""

# Signed payment credential (client -> server)
PAYMENT_HEADER = "X-PAYMENT"

# Out-of-band transfer marker (client -> server)
PAYMENT_RESOLVED_HEADER = "X-Payment-Resolved"

# Challenge token (server -> client, on 402)
CHALLENGE_HEADER = "x402-payment-request"

CORS_ALLOWED_METHODS = "POST, OPTIONS"
CORS_ALLOWED_HEADERS = f"Content-Type, {PAYMENT_HEADER}, {PAYMENT_RESOLVED_HEADER}"
