"""
Validation Service package for PS provisioning records.

This package checks the entitlements carried in a Technical Team Request
payload against data-quality rules. It provides:

- app.main: API surface for rule listing, payload parsing and validation.
- app.rules: Payload parser, rule catalog, evaluator and aggregator.

Guidelines:
- The service is stateless; enabled rules arrive with each request or come
  from the configured default snapshot.
- Data-quality problems are results, never errors.
"""
