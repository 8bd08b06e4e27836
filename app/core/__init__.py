"""Core business logic, independent of Flask.

Module Structure:
    - keycloak/       : Keycloak Admin API client (token cache, user provisioning)
    - people.py       : People to onboard (built-in list, CSV loader)
    - bulk_import.py  : Sequential bulk onboarding

Usage:
    from app.core.keycloak import KeycloakClient, UserService
    from app.core.bulk_import import bulk_import
    from app.core.people import PEOPLE

    client = KeycloakClient("http://keycloak:8080", "admin", "admin")
    summary = bulk_import(UserService(client, "demo"), PEOPLE)
"""
