"""
Integrations layer.
This package contains all code used to communicate with external systems:
- Payment providers (card processor, PayPal, regional aggregator, mobile money)
- Outbound email

Key rule:
- Lifecycle services MUST NOT call provider APIs directly.
- They go through the PaymentProvider interface (src/integrations/contracts).
- Mobile money runs on stub carriers until real carrier APIs are wired.

Switching implementations:
- Provider selection happens in ONE place (src/integrations/clients/registry.py).
"""
