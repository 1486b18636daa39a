# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2017 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import os

from idmprov._constants import (
    DEFAULT_BASE_DN,
    DEFAULT_ADMIN_RDN,
    DEFAULT_ENDPOINT,
    DEFAULT_UID_MIN,
    DEFAULT_GID_MIN,
    DEFAULT_TIMEOUT,
    DEFAULT_LOGIN_SHELL,
    DEFAULT_HOME_BASE,
    DEFAULT_PASSWORD_SCHEME,
)
from idmprov.exceptions import InvalidArgumentError
from idmprov.utils import is_a_dn, is_absolute_path

# knob name -> config attribute
ENVIRON_KNOBS = {
    'BASE_DN': 'basedn',
    'ADMIN_DN': 'binddn',
    'ADMIN_PASS': 'bindpw',
    'DIRECTORY_ENDPOINT': 'uri',
    'UID_MIN': 'uid_min',
    'GID_MIN': 'gid_min',
    'LOGIN_SHELL': 'login_shell',
    'HOME_BASE': 'home_base',
    'MAIL_DOMAIN': 'mail_domain',
    'PASSWORD_SCHEME': 'password_scheme',
    'DIRECTORY_TIMEOUT': 'timeout',
    'PROVISION_LOCK': 'lock_file',
}
# Older scripts called the endpoint LDAP_URI
ENVIRON_ALIASES = {
    'LDAP_URI': 'DIRECTORY_ENDPOINT',
}

INT_SETTINGS = ['uid_min', 'gid_min', 'timeout']


def _parse_unsigned(name, value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError('%s must be an integer, got %r' % (name, value))
    if value < 0:
        raise InvalidArgumentError('%s must not be negative, got %d' % (name, value))
    return value


class ProvisionConfig(object):
    """Settings of a provisioning run.

    Defaults come from idmprov._constants, then the environment knobs
    (BASE_DN, ADMIN_DN, ADMIN_PASS, DIRECTORY_ENDPOINT, UID_MIN, GID_MIN, ...)
    then whatever the caller overlays, typically an rc file section and the
    command line.
    """

    def __init__(self):
        self.basedn = DEFAULT_BASE_DN
        self.binddn = None
        self.bindpw = None
        self.uri = DEFAULT_ENDPOINT
        self.uid_min = DEFAULT_UID_MIN
        self.gid_min = DEFAULT_GID_MIN
        self.timeout = DEFAULT_TIMEOUT
        self.login_shell = DEFAULT_LOGIN_SHELL
        self.home_base = DEFAULT_HOME_BASE
        self.mail_domain = None
        self.password_scheme = DEFAULT_PASSWORD_SCHEME
        self.lock_file = None

    def __repr__(self):
        items = dict(self.__dict__)
        if items.get('bindpw') is not None:
            items['bindpw'] = '********'
        return 'ProvisionConfig(%s)' % ', '.join('%s=%r' % (k, v) for k, v in sorted(items.items()))

    @classmethod
    def from_environ(cls, environ=None):
        """Build a config from environment style knobs.

        :param environ: Mapping to read, os.environ when None
        :type environ: dict

        :returns: ProvisionConfig
        :raises: InvalidArgumentError
        """
        if environ is None:
            environ = os.environ
        config = cls()
        settings = {}
        for alias, knob in ENVIRON_ALIASES.items():
            if environ.get(alias) and not environ.get(knob):
                settings[ENVIRON_KNOBS[knob]] = environ[alias]
        for knob, attr in ENVIRON_KNOBS.items():
            value = environ.get(knob)
            if value is not None and value != '':
                settings[attr] = value
        config.overlay(**settings)
        return config

    def overlay(self, **settings):
        """Replace settings with the non None values given.

        :raises: InvalidArgumentError
        """
        for attr, value in settings.items():
            if not hasattr(self, attr):
                raise InvalidArgumentError('Unknown setting %s' % attr)
            if value is None:
                continue
            if attr in INT_SETTINGS:
                value = _parse_unsigned(attr, value)
            setattr(self, attr, value)
        self.validate()
        return self

    def validate(self):
        if not is_a_dn(self.basedn):
            raise InvalidArgumentError('BASE_DN %r is not a valid DN' % self.basedn)
        if self.binddn is not None and not is_a_dn(self.binddn):
            raise InvalidArgumentError('ADMIN_DN %r is not a valid DN' % self.binddn)
        for attr in ('login_shell', 'home_base'):
            if not is_absolute_path(getattr(self, attr)):
                raise InvalidArgumentError('%s must be an absolute path, got %r' % (attr, getattr(self, attr)))
        if '://' not in self.uri:
            raise InvalidArgumentError('DIRECTORY_ENDPOINT %r is not an ldap url' % self.uri)
        if self.timeout < 1:
            raise InvalidArgumentError('DIRECTORY_TIMEOUT must be at least 1 second, got %d' % self.timeout)

    @property
    def admin_dn(self):
        """The bind DN, cn=admin,<basedn> unless one was set."""
        if self.binddn is not None:
            return self.binddn
        return '%s,%s' % (DEFAULT_ADMIN_RDN, self.basedn)
