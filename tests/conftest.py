"""
Shared pytest fixtures.

Keys are generated once per session at 2048 bits; the 4096-bit default is
exercised only by the tests that assert it.
"""
from __future__ import annotations

import pytest

from csr.keys import KeyPair, export_public, generate_key_pair
from csr.request import CertificationRequestInfo, SubjectInfo, build_unsigned_request_info

TEST_KEY_SIZE = 2048
EMAIL = "someone@example.com"


@pytest.fixture(scope="session")
def key_pair() -> KeyPair:
    return generate_key_pair(key_size=TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def other_key_pair() -> KeyPair:
    return generate_key_pair(key_size=TEST_KEY_SIZE)


@pytest.fixture()
def subject() -> SubjectInfo:
    return SubjectInfo(common_name=EMAIL, email=EMAIL)


@pytest.fixture()
def request_info(key_pair: KeyPair, subject: SubjectInfo) -> CertificationRequestInfo:
    return build_unsigned_request_info(export_public(key_pair), subject)
