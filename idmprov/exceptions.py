# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

from idmprov._constants import ExitStatus


class Error(Exception):
    """Base of every provisioning failure.

    :param msg: Human readable diagnostic
    :type msg: str
    :param dn: The DN the failure relates to, if any
    :type dn: str
    :param attribute: The attribute the failure relates to, if any
    :type attribute: str
    """

    exit_status = ExitStatus.ERROR

    def __init__(self, msg, dn=None, attribute=None):
        super(Error, self).__init__(msg)
        self.msg = msg
        self.dn = dn
        self.attribute = attribute

    def __str__(self):
        out = self.msg
        if self.dn is not None:
            out += " (dn: %s" % self.dn
            if self.attribute is not None:
                out += ", attribute: %s" % self.attribute
            out += ")"
        elif self.attribute is not None:
            out += " (attribute: %s)" % self.attribute
        return out

    def to_dict(self):
        return {
            'type': type(self).__name__,
            'desc': self.msg,
            'dn': self.dn,
            'attribute': self.attribute,
        }


class InvalidArgumentError(Error):
    exit_status = ExitStatus.INVALID_ARGUMENT


class EntryAlreadyExists(Error):
    """The directory refused an add because the DN is taken."""
    exit_status = ExitStatus.ENTRY_ALREADY_EXISTS


class DuplicateEntry(Error):
    """A pre-check found the identity before anything was written."""
    exit_status = ExitStatus.DUPLICATE_ENTRY


class NoSuchEntry(Error):
    exit_status = ExitStatus.NO_SUCH_ENTRY


class SchemaViolation(Error):
    exit_status = ExitStatus.SCHEMA_VIOLATION


class InvalidIdentifier(SchemaViolation):
    """A login name that is not POSIX safe."""
    pass


class AttributeValueExists(SchemaViolation):
    """A modify add of a value the attribute already holds."""
    pass


class ConnectionFailure(Error):
    """Transport, timeout or bind failure talking to the directory."""
    exit_status = ExitStatus.CONNECTION_FAILURE


class PermissionDenied(Error):
    exit_status = ExitStatus.PERMISSION_DENIED
