# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import ldap
import pytest

from idmprov import DirectoryClient
from idmprov.cli_base import LogCapture
from idmprov.config import ProvisionConfig
from idmprov.tests.fakeldap import FakeDirectory

SUFFIX = 'dc=lab,dc=local'
ADMIN_DN = 'cn=admin,dc=lab,dc=local'
ADMIN_PW = 'password'
URI = 'ldap://ldap.lab.local:389'
PEOPLE = 'ou=People,dc=lab,dc=local'
GROUPS = 'ou=Groups,dc=lab,dc=local'


@pytest.fixture
def directory():
    """
        Returns an empty in memory directory holding only the suffix
    """
    return FakeDirectory(SUFFIX, ADMIN_DN, ADMIN_PW)


@pytest.fixture
def containers(directory):
    directory.add_entry(PEOPLE, {'objectClass': ['top', 'organizationalUnit'], 'ou': 'People'})
    directory.add_entry(GROUPS, {'objectClass': ['top', 'organizationalUnit'], 'ou': 'Groups'})
    return directory


@pytest.fixture
def client(directory):
    c = DirectoryClient(URI, ADMIN_DN, ADMIN_PW)
    c.open(conn=directory.connect(URI))
    yield c
    c.close()


@pytest.fixture
def config():
    return ProvisionConfig().overlay(basedn=SUFFIX, binddn=ADMIN_DN, bindpw=ADMIN_PW, uri=URI)


@pytest.fixture
def patch_ldap(monkeypatch, directory):
    """
        Route ldap.initialize to the in memory directory
    """
    monkeypatch.setattr(ldap, 'initialize', lambda uri, *args, **kwargs: directory.connect(uri))
    return directory


@pytest.fixture
def logcap():
    logcap = LogCapture()
    yield logcap
    logcap.log.removeHandler(logcap)
