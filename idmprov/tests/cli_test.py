# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2017 Red Hat, Inc.
# Copyright (C) 2019 William Brown <william@blackhats.net.au>
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import json
import logging

import ldap
import pytest

from idmprov._constants import ExitStatus
from idmprov.cli_base import FakeArgs
from idmprov.cli_idm import main
from idmprov.cli_idm.initialise import initialise
from idmprov.cli_idm.nextid import next_id
from idmprov.cli_idm.user import add_user, show_user
from idmprov.exceptions import NoSuchEntry, InvalidArgumentError
from idmprov.passwd import password_verify
from idmprov.tests.conftest import SUFFIX, ADMIN_DN, ADMIN_PW, URI, PEOPLE, GROUPS


@pytest.fixture
def environ():
    return {
        'BASE_DN': SUFFIX,
        'ADMIN_DN': ADMIN_DN,
        'ADMIN_PASS': ADMIN_PW,
        'DIRECTORY_ENDPOINT': URI,
    }


@pytest.fixture
def run(patch_ldap, environ, logcap, tmp_path):
    """Run the idmprov command against the in memory directory"""
    def run(*argv, **kwargs):
        logcap.flush()
        env = dict(environ)
        env.update(kwargs)
        return main(['--rc', str(tmp_path / 'norc')] + list(argv), environ=env, log=logcap.log)
    return run


def user_args(username, password=None, display_name=None, json=False):
    args = FakeArgs()
    args.username = username
    args.password = password
    args.display_name = display_name
    args.group = None
    args.json = json
    return args


def test_user_tasks(client, directory, config, logcap):
    init_args = FakeArgs()
    init_args.json = False
    initialise(client, config, logcap.log, init_args)
    assert logcap.contains("Created " + PEOPLE)
    assert logcap.contains("Created " + GROUPS)

    logcap.flush()
    initialise(client, config, logcap.log, init_args)
    assert logcap.contains("already exist")

    # First check that our test user isn't there:
    with pytest.raises(NoSuchEntry):
        show_user(client, config, logcap.log, user_args('testuser'))

    logcap.flush()
    add_user(client, config, logcap.log, user_args('testuser', 'password', 'Test User'))
    assert logcap.contains("uidNumber: 10000")
    assert logcap.contains("gidNumber: 10000")
    assert logcap.contains("homeDirectory: /home/testuser")

    logcap.flush()
    show_user(client, config, logcap.log, user_args('testuser'))
    assert logcap.contains("dn: uid=testuser," + PEOPLE)
    assert logcap.contains("cn: Test User")
    # The hash is never displayed
    assert not logcap.contains("{SSHA}")

    logcap.flush()
    next_args = FakeArgs()
    next_args.kind = 'uid'
    next_args.json = False
    assert next_id(client, config, logcap.log, next_args) == 10001
    assert logcap.contains("uidNumber: 10001")


def test_add_user_prompts_for_password(client, directory, config, logcap, monkeypatch):
    answers = iter(['S3cret!', 'S3cret!'])
    monkeypatch.setattr('idmprov.cli_base.getpass', lambda prompt: next(answers))
    add_user(client, config, logcap.log, user_args('bob'))
    assert password_verify('S3cret!', directory.get('uid=bob,' + PEOPLE)['userPassword'][0])


def test_add_user_prompt_mismatch(client, directory, config, logcap, monkeypatch):
    answers = iter(['S3cret!', 'typo'])
    monkeypatch.setattr('idmprov.cli_base.getpass', lambda prompt: next(answers))
    with pytest.raises(InvalidArgumentError):
        add_user(client, config, logcap.log, user_args('bob'))
    assert directory.get('uid=bob,' + PEOPLE) is None


def test_main_add_user(run, patch_ldap, logcap):
    assert run('add-user', 'bob', 'S3cret!', 'Bob Builder') == ExitStatus.SUCCESS
    assert logcap.contains('uidNumber: 10000')
    assert logcap.contains('user dn: uid=bob,' + PEOPLE)
    assert logcap.contains('group dn: cn=bob,' + GROUPS)
    assert patch_ldap.get('uid=bob,' + PEOPLE)['cn'] == ['Bob Builder']


def test_main_add_user_json(run, logcap):
    assert run('-j', 'add-user', 'bob', 'S3cret!') == ExitStatus.SUCCESS
    result = json.loads(logcap.outputs[-1].getMessage())
    assert result['type'] == 'result'
    assert result['items']['uid_number'] == 10000
    assert result['items']['gid_number'] == 10000
    assert result['items']['home_directory'] == '/home/bob'
    assert result['items']['group_created'] is True


def test_main_duplicate(run, logcap):
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.SUCCESS
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.DUPLICATE_ENTRY
    assert logcap.contains("Error: User 'bob' already exists")


def test_main_duplicate_json(run, logcap):
    run('add-user', 'bob', 'S3cret!')
    assert run('-j', 'add-user', 'bob', 'S3cret!') == ExitStatus.DUPLICATE_ENTRY
    err = json.loads(logcap.outputs[-1].getMessage())
    assert err['type'] == 'DuplicateEntry'
    assert err['dn'] == 'uid=bob,' + PEOPLE
    assert err['attribute'] == 'uid'


def test_main_invalid_username(run, patch_ldap):
    assert run('add-user', 'Bad', 'S3cret!') == ExitStatus.SCHEMA_VIOLATION
    assert patch_ldap.writes == []


def test_main_bad_credentials(run):
    assert run('add-user', 'bob', 'S3cret!', ADMIN_PASS='wrong') == ExitStatus.CONNECTION_FAILURE


def test_main_server_down(run, patch_ldap):
    patch_ldap.errors['simple_bind_s'] = ldap.SERVER_DOWN({'desc': "Can't contact LDAP server"})
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.CONNECTION_FAILURE


def test_main_permission_denied(run, patch_ldap):
    patch_ldap.errors['add_ext_s'] = ldap.INSUFFICIENT_ACCESS({'desc': 'Insufficient access'})
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.PERMISSION_DENIED


def test_main_schema_violation(run, patch_ldap):
    patch_ldap.errors['add_ext_s'] = ldap.OBJECT_CLASS_VIOLATION({'desc': 'Object class violation'})
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.SCHEMA_VIOLATION


def test_main_unclassified_error(run, patch_ldap):
    patch_ldap.errors['add_ext_s'] = ldap.UNWILLING_TO_PERFORM({'desc': 'Server is unwilling to perform'})
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.ERROR


def test_main_entry_already_exists(run, patch_ldap):
    def concurrent_add(dn):
        if dn.startswith('uid=bob,'):
            patch_ldap.hooks.pop('add_ext_s')
            patch_ldap.add_entry(dn, {'objectClass': ['top', 'posixAccount'], 'uid': 'bob'})

    patch_ldap.hooks['add_ext_s'] = concurrent_add
    assert run('add-user', 'bob', 'S3cret!') == ExitStatus.ENTRY_ALREADY_EXISTS


def test_main_no_such_shared_group(run):
    assert run('add-user', '--group', 'staff', 'bob', 'S3cret!') == ExitStatus.NO_SUCH_ENTRY


def test_main_invalid_config(run):
    assert run('add-user', 'bob', 'S3cret!', UID_MIN='lots') == ExitStatus.INVALID_ARGUMENT


def test_main_bad_arguments(run):
    with pytest.raises(SystemExit) as excinfo:
        run('next-id', 'pid')
    assert excinfo.value.code == ExitStatus.INVALID_ARGUMENT


def test_main_no_command(run):
    assert run() == ExitStatus.INVALID_ARGUMENT


def test_main_flags_override_environ(run, patch_ldap, logcap):
    assert run('-b', SUFFIX, '-H', URI, '-D', ADMIN_DN, '-w', ADMIN_PW, 'init',
               ADMIN_PASS='wrong') == ExitStatus.SUCCESS
    assert logcap.contains('Created ' + PEOPLE)


def test_main_next_id(run, logcap):
    run('add-user', 'bob', 'S3cret!')
    assert run('next-id', 'gid') == ExitStatus.SUCCESS
    assert logcap.contains('gidNumber: 10001')
    assert run('-j', 'next-id', 'uid') == ExitStatus.SUCCESS
    assert json.loads(logcap.outputs[-1].getMessage())['items'] == {'uidNumber': 10001}


def test_main_show_user_json(run, logcap):
    run('add-user', 'bob', 'S3cret!')
    assert run('-j', 'show-user', 'bob') == ExitStatus.SUCCESS
    shown = json.loads(logcap.outputs[-1].getMessage())
    assert shown['dn'] == 'uid=bob,' + PEOPLE
    assert shown['attrs']['uidnumber'] == ['10000']
    assert shown['attrs']['userpassword'] == ['********']
    assert run('show-user', 'alice') == ExitStatus.NO_SUCH_ENTRY


def test_main_lock_file(run, tmp_path):
    lock = tmp_path / 'idmprov.lock'
    assert run('--lock-file', str(lock), 'add-user', 'bob', 'S3cret!') == ExitStatus.SUCCESS
    assert lock.exists()


def test_main_verbose_never_logs_passwords(run, logcap, caplog):
    caplog.set_level(logging.DEBUG)
    logcap.log.setLevel(logging.DEBUG)
    try:
        assert run('-v', 'add-user', 'bob', 'S3cret!') == ExitStatus.SUCCESS
    finally:
        logcap.log.setLevel(logging.INFO)
    assert logcap.contains('Called with')
    assert not logcap.contains('S3cret!')
    assert 'S3cret!' not in caplog.text
