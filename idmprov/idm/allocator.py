# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

from idmprov._constants import DEFAULT_PAGE_SIZE
from idmprov._mapped_object import DSLogging, _gen_present
from idmprov.exceptions import SchemaViolation, InvalidArgumentError
from idmprov.utils import ensure_int


class IdAllocator(DSLogging):
    """Computes the next free numeric identifier of a container.

    This is a read then compute operation: two allocations running at the
    same time against the same container can observe the same maximum and
    return the same value. Callers that may run concurrently must serialize
    through a single writer (see idmprov.provision.ProvisionLock), or rely
    on a directory side mechanism such as the DNA plugin.

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param page_size: Page size of the scan, None to disable paging
    :type page_size: int
    """

    def __init__(self, client, page_size=DEFAULT_PAGE_SIZE):
        self._client = client
        self._page_size = page_size
        super(IdAllocator, self).__init__(client.verbose)

    def observed(self, containerdn, attribute):
        """All the integer values of attribute below containerdn

        :raises: SchemaViolation if a value is not an integer
        """
        values = []
        results = self._client.search(containerdn, _gen_present(attribute), 'subtree',
                                      [attribute], page_size=self._page_size)
        for entry in results:
            for value in entry.getValues(attribute):
                try:
                    values.append(ensure_int(value))
                except ValueError:
                    raise SchemaViolation('%s is not an integer: %r' % (attribute, value),
                                          dn=entry.dn, attribute=attribute)
        return values

    def next_id(self, containerdn, attribute, floor):
        """Return max(observed) + 1, or floor if nothing carries attribute.

        :param containerdn: The container to scan, e.g. ou=People,dc=lab,dc=local
        :type containerdn: str
        :param attribute: uidNumber or gidNumber
        :type attribute: str
        :param floor: The first id handed out
        :type floor: int

        :returns: int
        """
        floor = ensure_int(floor)
        if floor < 0:
            raise InvalidArgumentError('Allocation floor must be unsigned, got %d' % floor,
                                       attribute=attribute)
        values = self.observed(containerdn, attribute)
        if len(values) == 0:
            next_id = floor
        else:
            next_id = max(values) + 1
        self._log.debug('next %s under %s is %d' % (attribute, containerdn, next_id))
        return next_id
