# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import logging
import threading

import ldap
import pytest

from idmprov import DirectoryClient
from idmprov._constants import ProvisionState
from idmprov.exceptions import (
    DuplicateEntry,
    EntryAlreadyExists,
    InvalidIdentifier,
    InvalidArgumentError,
    NoSuchEntry,
    ConnectionFailure,
)
from idmprov.idm.allocator import IdAllocator
from idmprov.idm.user import UserAccounts, user_properties
from idmprov.passwd import password_verify
from idmprov.provision import (
    ProvisioningWorkflow,
    ProvisionLock,
    SharedGroupPolicy,
)
from idmprov.tests.conftest import SUFFIX, ADMIN_DN, ADMIN_PW, URI, PEOPLE, GROUPS

log = logging.getLogger(__name__)


def test_provision_bob(client, directory, config):
    """Empty directory, bob gets People, Groups, a private group and an account"""
    workflow = ProvisioningWorkflow(client, config)
    assert workflow.state == ProvisionState.START
    result = workflow.provision('bob', 'S3cret!', 'Bob Builder')
    assert workflow.state == ProvisionState.DONE

    assert result.username == 'bob'
    assert result.user_dn == 'uid=bob,' + PEOPLE
    assert result.group_dn == 'cn=bob,' + GROUPS
    assert result.uid_number == 10000
    assert result.gid_number == 10000
    assert result.home_directory == '/home/bob'
    assert result.login_shell == '/bin/bash'
    assert result.group_created

    assert directory.get(PEOPLE)['objectClass'] == ['top', 'organizationalUnit']
    assert directory.get(GROUPS)['objectClass'] == ['top', 'organizationalUnit']

    group = directory.get('cn=bob,' + GROUPS)
    assert group['objectClass'] == ['top', 'posixGroup']
    assert group['gidNumber'] == ['10000']
    assert group['memberUid'] == ['bob']

    user = directory.get('uid=bob,' + PEOPLE)
    assert sorted(user['objectClass']) == sorted(['top', 'person', 'organizationalPerson',
                                                  'inetOrgPerson', 'posixAccount'])
    assert user['uid'] == ['bob']
    assert user['cn'] == ['Bob Builder']
    assert user['sn'] == ['bob']
    assert user['uidNumber'] == ['10000']
    assert user['gidNumber'] == ['10000']
    assert user['homeDirectory'] == ['/home/bob']
    assert user['loginShell'] == ['/bin/bash']
    assert user['userPassword'][0].startswith('{SSHA}')
    assert password_verify('S3cret!', user['userPassword'][0])


def test_provision_second_user(client, directory, config):
    ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    result = ProvisioningWorkflow(client, config).provision('alice', 'S3cret!')
    assert (result.uid_number, result.gid_number) == (10001, 10001)
    assert directory.get('uid=alice,' + PEOPLE)['cn'] == ['alice']


def test_uid_and_gid_are_independent(client, containers, config):
    containers.add_entry('cn=staff,' + GROUPS, {'objectClass': ['top', 'posixGroup'], 'cn': 'staff',
                                               'gidNumber': 10004})
    result = ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    assert result.uid_number == 10000
    assert result.gid_number == 10005


def test_floors_from_config(client, config):
    config.overlay(uid_min=20000, gid_min=30000, home_base='/srv/home', login_shell='/bin/zsh',
                   mail_domain='lab.local')
    result = ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    assert (result.uid_number, result.gid_number) == (20000, 30000)
    assert result.home_directory == '/srv/home/bob'
    assert result.login_shell == '/bin/zsh'


def test_duplicate_rejection(client, directory, config):
    ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    before = directory.snapshot()
    writes = len(directory.writes)

    workflow = ProvisioningWorkflow(client, config)
    with pytest.raises(DuplicateEntry) as excinfo:
        workflow.provision('bob', 'Other!')
    assert excinfo.value.dn == 'uid=bob,' + PEOPLE
    assert excinfo.value.attribute == 'uid'
    assert workflow.state == ProvisionState.START
    assert directory.snapshot() == before
    assert len(directory.writes) == writes


def test_duplicate_without_group_writes_nothing(client, containers, config):
    """A user made by another tool, with no private group, is still refused
    before the group would be created."""
    containers.add_entry('uid=carol,' + PEOPLE, {'objectClass': ['top', 'account'], 'uid': 'carol'})
    before = containers.snapshot()
    with pytest.raises(DuplicateEntry):
        ProvisioningWorkflow(client, config).provision('carol', 'S3cret!')
    assert containers.snapshot() == before


def test_invalid_username_writes_nothing(client, directory, config):
    before = directory.snapshot()
    with pytest.raises(InvalidIdentifier):
        ProvisioningWorkflow(client, config).provision('Bad Name', 'S3cret!')
    with pytest.raises(InvalidArgumentError):
        ProvisioningWorkflow(client, config).provision('bob', '')
    assert directory.snapshot() == before
    assert directory.writes == []


def test_idempotent_bootstrap(client, directory, config):
    workflow = ProvisioningWorkflow(client, config)
    assert workflow.ensure_containers() == [PEOPLE, GROUPS]
    snapshot = directory.snapshot()
    assert workflow.ensure_containers() == []
    assert ProvisioningWorkflow(client, config).ensure_containers() == []
    assert directory.snapshot() == snapshot


def test_existing_private_group_is_adopted(client, containers, config):
    containers.add_entry('cn=bob,' + GROUPS, {'objectClass': ['top', 'posixGroup'], 'cn': 'bob',
                                             'gidNumber': 12345})
    result = ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    assert result.gid_number == 12345
    assert not result.group_created
    assert containers.get('uid=bob,' + PEOPLE)['gidNumber'] == ['12345']


def test_membership_convergence(client, containers, config):
    """The group already lists the user, linking is still a success"""
    containers.add_entry('cn=bob,' + GROUPS, {'objectClass': ['top', 'posixGroup'], 'cn': 'bob',
                                             'gidNumber': 10000, 'memberUid': 'bob'})
    workflow = ProvisioningWorkflow(client, config)
    workflow.provision('bob', 'S3cret!')
    assert workflow.state == ProvisionState.DONE
    assert containers.get('cn=bob,' + GROUPS)['memberUid'] == ['bob']
    assert not workflow.link_membership('cn=bob,' + GROUPS, 'bob')
    assert containers.get('cn=bob,' + GROUPS)['memberUid'] == ['bob']


def test_rerun_after_interruption(client, directory, config):
    """The user was added but the run died before the membership step"""
    directory.errors['modify_ext_s'] = ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"})
    workflow = ProvisioningWorkflow(client, config)
    with pytest.raises(ConnectionFailure):
        workflow.provision('bob', 'S3cret!')
    assert workflow.state == ProvisionState.USER_CREATED
    assert 'memberUid' not in directory.get('cn=bob,' + GROUPS)

    del directory.errors['modify_ext_s']
    # Re-running the whole workflow reports the existing user
    with pytest.raises(DuplicateEntry):
        ProvisioningWorkflow(client, config).provision('bob', 'S3cret!')
    # Linking alone converges
    assert workflow.link_membership('cn=bob,' + GROUPS, 'bob')
    assert directory.get('cn=bob,' + GROUPS)['memberUid'] == ['bob']


def test_missing_group_at_link_is_fatal(client, containers, config):
    workflow = ProvisioningWorkflow(client, config)
    with pytest.raises(NoSuchEntry):
        workflow.link_membership('cn=ghost,' + GROUPS, 'bob')


def test_same_username_race(client, directory, config):
    """Another process adds bob between our duplicate check and our add"""
    def concurrent_add(dn):
        if dn.startswith('uid=bob,'):
            directory.hooks.pop('add_ext_s')
            directory.add_entry(dn, {'objectClass': ['top', 'posixAccount'], 'uid': 'bob'})

    directory.hooks['add_ext_s'] = concurrent_add
    workflow = ProvisioningWorkflow(client, config)
    with pytest.raises(EntryAlreadyExists):
        workflow.provision('bob', 'S3cret!')
    assert workflow.state == ProvisionState.USER_VALIDATED


def test_shared_group_policy(client, containers, config):
    containers.add_entry('cn=staff,' + GROUPS, {'objectClass': ['top', 'posixGroup'], 'cn': 'staff',
                                               'gidNumber': 5000})
    policy = SharedGroupPolicy('staff')
    for name in ('bob', 'alice'):
        result = ProvisioningWorkflow(client, config, group_policy=policy).provision(name, 'S3cret!')
        assert result.gid_number == 5000
        assert result.group_dn == 'cn=staff,' + GROUPS
        assert not result.group_created
    assert sorted(containers.get('cn=staff,' + GROUPS)['memberUid']) == ['alice', 'bob']
    assert containers.get('cn=bob,' + GROUPS) is None


def test_shared_group_policy_missing_group(client, containers, config):
    workflow = ProvisioningWorkflow(client, config, group_policy=SharedGroupPolicy('staff'))
    with pytest.raises(NoSuchEntry):
        workflow.provision('bob', 'S3cret!')
    assert workflow.state == ProvisionState.CONTAINERS_ENSURED
    assert containers.get('uid=bob,' + PEOPLE) is None


def test_uniqueness_documented_race(client, containers, config):
    """Without serialization two runs can observe the same maximum: both
    allocations happen before either add."""
    allocator = IdAllocator(client)
    users = UserAccounts(client, SUFFIX)
    first = allocator.next_id(PEOPLE, 'uidNumber', config.uid_min)
    second = allocator.next_id(PEOPLE, 'uidNumber', config.uid_min)
    for name, number in (('bob', first), ('alice', second)):
        users.create(user_properties(name, number, 10000, '{SSHA}x'))
    numbers = [e.getValue('uidNumber') for e in users.list()]
    assert len(numbers) == 2
    assert len(set(numbers)) == 1


def test_uniqueness_serialized(directory, config, tmp_path):
    """Concurrent runs sharing a lock file never reuse a number"""
    config.overlay(lock_file=str(tmp_path / 'idmprov.lock'))
    names = ['user%d' % i for i in range(8)]
    errors = []

    def run(name):
        c = DirectoryClient(URI, ADMIN_DN, ADMIN_PW)
        c.open(conn=directory.connect(URI))
        try:
            ProvisioningWorkflow(c, config).provision(name, 'S3cret!')
        except Exception as e:
            errors.append(e)
        finally:
            c.close()

    threads = [threading.Thread(target=run, args=(name,)) for name in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    uids = [directory.get('uid=%s,%s' % (n, PEOPLE))['uidNumber'][0] for n in names]
    gids = [directory.get('cn=%s,%s' % (n, GROUPS))['gidNumber'][0] for n in names]
    assert sorted(int(u) for u in uids) == list(range(10000, 10008))
    assert sorted(int(g) for g in gids) == list(range(10000, 10008))


def test_provision_lock(tmp_path):
    path = str(tmp_path / 'lock')
    lock = ProvisionLock(path)
    with lock:
        assert lock._fd is not None
    assert lock._fd is None
    # No path, no lock
    with ProvisionLock(None) as nolock:
        assert nolock._fd is None


def test_provision_lock_bad_path(tmp_path):
    with pytest.raises(InvalidArgumentError):
        with ProvisionLock(str(tmp_path / 'missing' / 'lock')):
            pass
