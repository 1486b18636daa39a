# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016, William Brown <william at blackhats.net.au>
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

from idmprov._mapped_object import IdmObject, IdmObjects
from idmprov.exceptions import EntryAlreadyExists
from idmprov.utils import join_dn

MUST_ATTRIBUTES = [
    'ou',
]
RDN = 'ou'


class OrganizationalUnit(IdmObject):
    """A single instance of OrganizationalUnit entry

    :param verbose: Log at debug level
    :type verbose: bool
    """

    def __init__(self, verbose=False):
        super(OrganizationalUnit, self).__init__(verbose)
        self._rdn_attribute = RDN
        self._must_attributes = MUST_ATTRIBUTES
        self._create_objectclasses = [
            'top',
            'organizationalUnit',
        ]


class OrganizationalUnits(IdmObjects):
    """IdmObjects that represents OrganizationalUnits entry

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param basedn: Base DN for all organizational units below
    :type basedn: str
    """

    def __init__(self, client, basedn):
        super(OrganizationalUnits, self).__init__(client, basedn)
        self._objectclasses = [
            'organizationalUnit',
        ]
        self._filterattrs = [RDN]
        self._childobject = OrganizationalUnit
        self._scope = 'one'

    def ensure(self, name):
        """Create the organizational unit ou=name if it is absent.

        Running this again when the unit exists is a no-op.

        :param name: The ou value, e.g. People
        :type name: str

        :returns: (dn, created) where created is False if it already existed
        """
        dn = join_dn(RDN, name, self._basedn)
        if self._client.exists(dn):
            self._log.debug('Exists %s' % dn)
            return (dn, False)
        try:
            self.create({RDN: name})
        except EntryAlreadyExists:
            # Someone else won the race, which is the state we wanted.
            self._log.debug('Created concurrently %s' % dn)
            return (dn, False)
        self._log.info('Created %s' % dn)
        return (dn, True)
