# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

"""
This file contains helpers to generate password hashes compatible with
the userPassword storage schemes of OpenLDAP and Directory Server, in the
layout slappasswd produces:

    {SCHEME}base64(digest(password + salt) + salt)
"""

from passlib.context import CryptContext
from passlib.hash import (ldap_sha1, ldap_salted_sha1, ldap_salted_sha256,
                          ldap_salted_sha512)

from idmprov.exceptions import InvalidArgumentError

# slappasswd uses an 8 byte salt
SALT_SIZE = 8

SCHEMES = {
    'SHA': ldap_sha1,
    'SSHA': ldap_salted_sha1,
    'SSHA256': ldap_salted_sha256,
    'SSHA512': ldap_salted_sha512,
}

pwd_context = CryptContext(schemes=[h.name for h in SCHEMES.values()],
                           default=ldap_salted_sha1.name)


def _handler(scheme):
    try:
        return SCHEMES[scheme.upper()]
    except (KeyError, AttributeError):
        raise InvalidArgumentError("Unsupported password scheme %r, expected one of %s" %
                                   (scheme, ', '.join(sorted(SCHEMES))), attribute='userPassword')


def password_hash(pw, scheme='SSHA', salt=None):
    """Generate a password hash

    :param pw: the password
    :type pw: str
    :param scheme: password scheme to be used
        (e.g. SHA, SSHA, SSHA256, SSHA512)
    :type scheme: str
    :param salt: the salt, random when None. Ignored by unsalted schemes.
    :type salt: bytes

    :returns: a string with a password hash
    """
    if pw is None or len(pw) == 0:
        raise InvalidArgumentError("The password must not be empty", attribute='userPassword')
    handler = _handler(scheme)
    if 'salt' in handler.setting_kwds:
        if salt is None:
            handler = handler.using(salt_size=SALT_SIZE)
        else:
            handler = handler.using(salt=salt)
    return handler.hash(pw)


def password_scheme(hashed):
    """Return the scheme tag of a hash, e.g. SSHA"""
    if not hashed.startswith('{') or '}' not in hashed:
        raise InvalidArgumentError("Not a {SCHEME} password hash", attribute='userPassword')
    return hashed[1:hashed.index('}')].upper()


def password_verify(pw, hashed):
    """Check a cleartext password against a hash

    :returns: True if they match
    """
    _handler(password_scheme(hashed))
    return pwd_context.verify(pw, hashed)
