"""Core Business Logic Module

This module provides the identity and access-control logic, independent of the
HTTP layer.

Architecture:
    - No Flask imports: every operation takes a ServiceContext
    - Testable against an in-memory store and a fake identity provider
    - Reusable across interfaces (HTTP API, operator CLI)

Module Structure:
    - roles.py                : Role hierarchy predicates
    - errors.py               : Service error taxonomy
    - validators.py           : Input validation
    - context.py              : ServiceContext (session, identity provider, settings, clock)
    - audit.py                : Signed, best-effort ActivityLog writes
    - identity/               : Keycloak Admin API adapter
    - provisioning_service.py : Account provisioning saga, organization founding
    - invitations.py          : Invitation issue / revoke / redeem / list / preview
    - membership.py           : Member deactivation

Public APIs:
    Provisioning (orgaccess.core.provisioning_service):
        - provision()
        - found_organization()

    Invitations (orgaccess.core.invitations):
        - issue()
        - revoke()
        - redeem()
        - list_invitations()
        - preview()

    Membership (orgaccess.core.membership):
        - deactivate()
"""
