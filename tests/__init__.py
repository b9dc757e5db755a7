# Water Ledger Test Suite
#
# This package contains:
# - Unit tests for pricing, analytics, credit, reports and validation
# - API client tests (httpx MockTransport fake backend)
# - Flask route and CLI tests against the same fake backend
#
# Run with: python -m tests.run [smoke|full|<marker>]
