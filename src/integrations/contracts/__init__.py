"""
Contracts (data models).

This folder defines the request/response shapes for the payment integrations:
- the generic payment request every provider receives
- the normalized initiation envelope (redirect / continuation token / pending)
- the normalized verification result

Both mock and real HTTP clients should use these contracts.
"""
