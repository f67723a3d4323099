"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used for the mobile money carriers (MTN, Airtel, M-Pesa) until
carrier credentials and endpoints are available.

Important:
- Mock clients must follow the SAME PaymentProvider interface as real HTTP clients.
- Results are shaped according to src/integrations/contracts/interfaces.py

Switching to real:
Register a real carrier client in src/integrations/clients/registry.py under the
same "momo:<carrier>" key.
"""
