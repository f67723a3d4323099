"""
Contract lifecycle services.

- state_machine: contract creation, signing, payment status and transitions
- access_codes: one-off codes that let a client sign without an account
- audit: signature audit trail
- notifications: contract and reminder emails
- payments: provider dispatch and verification that feeds contract payment status
"""
