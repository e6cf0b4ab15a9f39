"""
Permission ledger feature module.

Grants, revokes and checks permission strings held by an identity under a
service, scoped per creator.
"""
