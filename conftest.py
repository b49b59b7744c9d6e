"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Shared pytest configuration.
-------------------------------------------------------------------------
"""
import pytest


@pytest.fixture(autouse=True)
def fast_password_hashers(settings):
    """MD5 hashing for tests."""
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
