"""
Real HTTP integration clients.

These clients talk to live payment providers:
- stripe_card: card processor, returns a client-side continuation token
- paypal: REST orders API, returns an approval redirect
- flutterwave: hosted checkout, returns a redirect

Important:
- Must implement src.integrations.contracts.interfaces.PaymentProvider
- Provider errors are logged here and surfaced only as generic messages
"""
