# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016, William Brown <william at blackhats.net.au>
# Copyright (C) 2024 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

from idmprov._mapped_object import IdmObject, IdmObjects
from idmprov._constants import GROUPS_OU
from idmprov.exceptions import SchemaViolation, AttributeValueExists
from idmprov.utils import ensure_int

MUST_ATTRIBUTES = [
    'cn',
    'gidNumber',
]
RDN = 'cn'
DEFAULT_BASEDN_RDN = 'ou=%s' % GROUPS_OU


def _check_id_number(dn, attr, values):
    if len(values) != 1:
        raise SchemaViolation('Attribute %s must be single valued' % attr, dn=dn, attribute=attr)
    try:
        value = ensure_int(values[0])
    except ValueError:
        raise SchemaViolation('Attribute %s must be a decimal integer, got %r' % (attr, values[0]),
                              dn=dn, attribute=attr)
    if value < 0:
        raise SchemaViolation('Attribute %s must be unsigned, got %d' % (attr, value), dn=dn, attribute=attr)


class PosixGroup(IdmObject):
    """A single instance of PosixGroup entry

    :param verbose: Log at debug level
    :type verbose: bool
    """

    def __init__(self, verbose=False):
        super(PosixGroup, self).__init__(verbose)
        self._rdn_attribute = RDN
        self._must_attributes = MUST_ATTRIBUTES
        self._create_objectclasses = [
            'top',
            'posixGroup',
        ]

    def _validate_values(self, dn, properties):
        _check_id_number(dn, 'gidNumber', properties['gidNumber'])
        members = properties.get('memberUid')
        if members is not None:
            # memberUid is a set, keep first occurrences only
            properties['memberUid'] = list(dict.fromkeys(members))


class PosixGroups(IdmObjects):
    """IdmObjects that represents PosixGroups entry
    By default it uses 'ou=Groups' as rdn.

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param basedn: Base DN for all group entries below
    :type basedn: str
    :param rdn: The DN that will be combined with basedn, None to use basedn as is
    :type rdn: str
    """

    def __init__(self, client, basedn, rdn=DEFAULT_BASEDN_RDN):
        if rdn is not None:
            basedn = '{},{}'.format(rdn, basedn)
        super(PosixGroups, self).__init__(client, basedn)
        self._objectclasses = [
            'posixGroup',
        ]
        self._filterattrs = [RDN]
        self._childobject = PosixGroup

    def get_gid(self, entry):
        """The gidNumber of a group entry as an int."""
        value = entry.getValue('gidNumber')
        try:
            return ensure_int(value)
        except (TypeError, ValueError):
            raise SchemaViolation('Group has no usable gidNumber: %r' % value,
                                  dn=entry.dn, attribute='gidNumber')

    def check_member(self, dn, uid):
        """Check if uid is listed in the memberUid of the group dn

        :param dn: Group DN
        :type dn: str
        :param uid: User name
        :type uid: str
        """
        entry = self._client.search(dn, scope='base', attrlist=['memberUid']).first()
        if entry is None:
            return False
        return uid in entry.getValues('memberUid')

    def ensure_member(self, dn, uid):
        """Ensure that uid is a memberUid of the group dn, or add it.

        A value that is already present is success. A missing group is not.

        :param dn: Group DN
        :type dn: str
        :param uid: User name
        :type uid: str

        :returns: True if the value was added, False if it was present
        :raises: NoSuchEntry
        """
        try:
            self._client.modify_attribute(dn, 'memberUid', 'add', [uid])
        except AttributeValueExists:
            self._log.debug('%s already a memberUid of %s' % (uid, dn))
            return False
        self._log.debug('Added memberUid %s to %s' % (uid, dn))
        return True
