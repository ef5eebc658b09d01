"""Organization access control service.

Multi-tenant identity core: role hierarchy, member provisioning, invitation
lifecycle, member deactivation and a signed activity log. Accounts live in
Keycloak; organizations, profiles, invitations and activity live in the
relational store.
"""
