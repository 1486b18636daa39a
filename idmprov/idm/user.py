# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016, William Brown <william at blackhats.net.au>
# Copyright (C) 2024 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import re

from idmprov._mapped_object import IdmObject, IdmObjects
from idmprov._constants import (PEOPLE_OU, USERNAME_PATTERN, DEFAULT_HOME_BASE,
                                DEFAULT_LOGIN_SHELL)
from idmprov.idm.posixgroup import _check_id_number
from idmprov.exceptions import InvalidIdentifier, SchemaViolation
from idmprov.utils import is_absolute_path, ensure_int

MUST_ATTRIBUTES = [
    'uid',
    'cn',
    'sn',
    'uidNumber',
    'gidNumber',
    'homeDirectory',
    'loginShell',
    'userPassword',
]
RDN = 'uid'
DEFAULT_BASEDN_RDN = 'ou=%s' % PEOPLE_OU

_username_re = re.compile(USERNAME_PATTERN)


def validate_username(username):
    """Check that username is a POSIX safe login name

    :raises: InvalidIdentifier
    """
    if username is None or not _username_re.match(username):
        raise InvalidIdentifier("Username %r is not a safe POSIX name" % username, attribute=RDN)
    return username


def user_properties(username, uid_number, gid_number, password_hash, display_name=None,
                    home_base=DEFAULT_HOME_BASE, login_shell=DEFAULT_LOGIN_SHELL,
                    mail_domain=None):
    """The attributes of a new posix account, ready for UserAccount.build

    :param username: The login name
    :type username: str
    :param uid_number: The allocated uidNumber
    :type uid_number: int
    :param gid_number: The primary gidNumber
    :type gid_number: int
    :param password_hash: The userPassword, already hashed
    :type password_hash: str
    :param display_name: Full name, defaults to the username
    :type display_name: str

    :returns: dict
    """
    display_name = display_name or username
    properties = {
        'uid': username,
        'cn': display_name,
        'sn': username,
        'uidNumber': str(uid_number),
        'gidNumber': str(gid_number),
        'homeDirectory': '%s/%s' % (home_base.rstrip('/'), username),
        'loginShell': login_shell,
        'userPassword': password_hash,
        'gecos': display_name,
    }
    if mail_domain:
        properties['mail'] = '%s@%s' % (username, mail_domain)
    return properties


class UserAccount(IdmObject):
    """A single instance of a posix User Account entry

    This is the classic "user account" style of cn + sn.

    :param verbose: Log at debug level
    :type verbose: bool
    """

    def __init__(self, verbose=False):
        super(UserAccount, self).__init__(verbose)
        self._rdn_attribute = RDN
        self._must_attributes = MUST_ATTRIBUTES
        self._create_objectclasses = [
            'top',
            'person',
            'organizationalPerson',
            'inetOrgPerson',
            'posixAccount',
        ]

    def _validate_values(self, dn, properties):
        if len(properties['uid']) != 1:
            raise SchemaViolation('Attribute uid must be single valued', dn=dn, attribute='uid')
        validate_username(properties['uid'][0])
        _check_id_number(dn, 'uidNumber', properties['uidNumber'])
        _check_id_number(dn, 'gidNumber', properties['gidNumber'])
        for attr in ('homeDirectory', 'loginShell'):
            if not is_absolute_path(properties[attr][0]):
                raise SchemaViolation('Attribute %s must be an absolute path, got %r' %
                                      (attr, properties[attr][0]), dn=dn, attribute=attr)
        if not properties['userPassword'][0].startswith('{'):
            # Refuse anything that looks like cleartext
            raise SchemaViolation('Attribute userPassword must be a {SCHEME} hash', dn=dn,
                                  attribute='userPassword')

    def _validate(self, properties, basedn):
        # Check the login name first so a bad one reports as such, even
        # when other attributes are missing.
        if isinstance(properties, dict) and properties.get(RDN) is not None:
            uid = properties.get(RDN)
            if not isinstance(uid, (list, tuple)):
                validate_username(uid)
        return super(UserAccount, self)._validate(properties, basedn)


class UserAccounts(IdmObjects):
    """IdmObjects that represents all User Account entries in suffix.
    By default it uses 'ou=People' as rdn.

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param basedn: Suffix DN
    :type basedn: str
    :param rdn: The DN that will be combined with basedn, None to use basedn as is
    :type rdn: str
    """

    def __init__(self, client, basedn, rdn=DEFAULT_BASEDN_RDN):
        if rdn is not None:
            basedn = '{},{}'.format(rdn, basedn)
        super(UserAccounts, self).__init__(client, basedn)
        self._objectclasses = [
            'posixAccount',
        ]
        self._filterattrs = [RDN]
        self._childobject = UserAccount

    def get_ids(self, entry):
        """The (uidNumber, gidNumber) of a user entry as ints."""
        return (ensure_int(entry.getValue('uidNumber')), ensure_int(entry.getValue('gidNumber')))
