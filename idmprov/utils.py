# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

"""Utilities shared by the client, the entry builders and the cli."""

import os
import ldap
import ldap.dn

from idmprov._constants import SENSITIVE_ATTRS

#
# Type coercion. python-ldap speaks bytes, we speak str.
#


def ensure_bytes(val):
    if val is not None and not isinstance(val, bytes):
        return str(val).encode()
    return val


def ensure_str(val):
    if val is not None and isinstance(val, bytes):
        return val.decode('utf-8')
    return val


def ensure_int(val):
    if val is not None and not isinstance(val, int):
        return int(ensure_str(val))
    return val


def ensure_list_bytes(val):
    return [ensure_bytes(v) for v in val]


def ensure_list_str(val):
    return [ensure_str(v) for v in val]


#
# DN tools
#


def is_a_dn(dn):
    """Returns True if the given string is a DN, False otherwise."""
    return ldap.dn.is_dn(dn) and dn.find("=") > 0


def join_dn(rdn_attr, value, basedn):
    return '%s=%s,%s' % (rdn_attr, ldap.dn.escape_dn_chars(value), basedn)


def is_absolute_path(path):
    return path is not None and os.path.isabs(path)


#
# Logging helpers
#


def display_log_value(attr, value, hide_value="********"):
    # Mask all the sensitive attribute values
    if attr.lower() in SENSITIVE_ATTRS:
        if isinstance(value, list):
            return [hide_value for _ in value]
        return hide_value
    return value


def display_log_data(data, hide_value="********"):
    if isinstance(data, dict):
        return {k: display_log_value(k, v, hide_value) for k, v in data.items()}
    return data

# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4
