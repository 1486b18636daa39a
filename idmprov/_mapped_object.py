# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2019 Red Hat, Inc.
# Copyright (C) 2019 William Brown <william@blackhats.net.au>
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import logging
from ldap import filter as ldap_filter

from idmprov._entry import Entry
from idmprov.exceptions import Error, NoSuchEntry, SchemaViolation
from idmprov.utils import ensure_str, join_dn, display_log_data


def _term_gen(term):
    while True:
        yield term


def _gen(op=None, extra=None):
    filt = ''
    if type(extra) == list:
        for ext in extra:
            filt += ext
    elif type(extra) == str:
        filt += extra
    if filt != '':
        filt = '(%s%s)' % (op, filt)
    return filt


def _gen_and(extra=None):
    return _gen('&', extra)


def _gen_or(extra=None):
    return _gen('|', extra)


def _gen_present(attr):
    return '(%s=*)' % attr


def _gen_filter(attrtypes, values, extra=None):
    filt = ''
    if attrtypes is None:
        raise ValueError("Attempting to filter on type that doesn't support filtering!")
    for attr, value in zip(attrtypes, values):
        if attr is not None and value is not None:
            filt += '(%s=%s)' % (attr, ldap_filter.escape_filter_chars(str(value)))
    if extra is not None:
        filt += '{FILT}'.format(FILT=extra)
    return filt


class DSLogging(object):
    """The benefit of this is automatic name detection, and correct application
    of level and verbosity to the object.

    :param verbose: False by default
    :type verbose: bool
    """

    def __init__(self, verbose=False):
        self._log = logging.getLogger(type(self).__name__)
        if verbose:
            self._log.setLevel(logging.DEBUG)
        else:
            self._log.setLevel(logging.INFO)


class IdmObject(DSLogging):
    """The template of one kind of entry: naming attribute, mandatory
    attributes and object classes. It builds well formed Entry values and
    never talks to the directory.

    :param verbose: Log at debug level
    :type verbose: bool
    """

    def __init__(self, verbose=False):
        super(IdmObject, self).__init__(verbose)
        self._rdn_attribute = None
        self._must_attributes = None
        self._create_objectclasses = []

    def _normalise(self, properties):
        # Work on a copy, the caller's dictionary is never altered
        props = {}
        for k, v in properties.items():
            if v is None:
                continue
            if isinstance(v, (list, tuple, set)):
                values = [ensure_str(x) for x in v if x is not None]
            else:
                values = [ensure_str(v)]
            values = [str(x) for x in values]
            if len(values) > 0:
                props[k] = values
        return props

    def _validate_values(self, dn, properties):
        """Type specific value checks, for subclasses to extend."""
        pass

    def _validate(self, properties, basedn):
        """Validate a build request.

        It checks that all the values in _must_attributes exist in some
        form in the dictionary, and derives the dn from the naming
        attribute.

        :returns: (dn, properties) where properties is a new dict of lists
        """
        if properties is None:
            raise SchemaViolation('Invalid request to build %s. Properties cannot be None' % type(self).__name__)
        if not isinstance(properties, dict):
            raise SchemaViolation("properties must be a dictionary")
        if basedn is None:
            raise SchemaViolation('Invalid request to build %s. basedn cannot be None' % type(self).__name__)

        props = self._normalise(properties)

        for attr in (self._must_attributes or []):
            values = props.get(attr)
            if values is None or all(v == '' for v in values):
                raise SchemaViolation('Attribute %s must not be None' % attr, attribute=attr)

        rdn = props.get(self._rdn_attribute)
        if rdn is None:
            raise SchemaViolation('Attribute %s must not be None' % self._rdn_attribute,
                                  attribute=self._rdn_attribute)
        if len(rdn) != 1:
            raise SchemaViolation('Naming attribute %s must be single valued' % self._rdn_attribute,
                                  attribute=self._rdn_attribute)

        dn = join_dn(self._rdn_attribute, rdn[0], ensure_str(basedn))
        self._validate_values(dn, props)
        return (dn, props)

    def build(self, properties, basedn):
        """Build a new entry below basedn

        :param properties: Attributes for the new entry
        :type properties: dict
        :param basedn: Base DN of the new entry
        :type basedn: str

        :returns: Entry
        :raises: SchemaViolation
        """
        assert(len(self._create_objectclasses) > 0)
        (dn, valid_props) = self._validate(properties, basedn)
        e = Entry(dn)
        e.setValues('objectClass', self._create_objectclasses)
        e.update(valid_props)
        self._log.debug('Built entry %s : %s' % (dn, display_log_data(e.data)))
        return e


class IdmObjects(DSLogging):
    """The object represents the next idea: "Everything is an instance of
    something that exists in this way", i.e. we unite LDAP entries by some
    set of parameters with the object.

    :param client: A bound client
    :type client: idmprov.DirectoryClient
    :param basedn: The container DN holding the entries
    :type basedn: str
    """

    def __init__(self, client, basedn):
        self._client = client
        super(IdmObjects, self).__init__(client.verbose)
        self._childobject = IdmObject
        self._objectclasses = []
        self._filterattrs = []
        self._basedn = basedn
        self._scope = 'subtree'

    @property
    def basedn(self):
        return self._basedn

    def _get_objectclass_filter(self):
        return _gen_and(
            _gen_filter(_term_gen('objectclass'), self._objectclasses)
        )

    def _get_selector_filter(self, selector):
        return _gen_and([
            self._get_objectclass_filter(),
            _gen_or(
                # This will yield all combinations of selector to filterattrs.
                _gen_filter(self._filterattrs, _term_gen(selector))
            ),
        ])

    def builder(self):
        return self._childobject(verbose=self._client.verbose)

    def list(self):
        """Get all the entries of our type below the base DN

        :returns: list of Entry, empty when the container is missing
        """
        filterstr = self._get_objectclass_filter()
        self._log.debug('list filter = %s' % filterstr)
        return list(self._client.search(self._basedn, filterstr, self._scope))

    def _get_selector(self, selector):
        filterstr = self._get_selector_filter(selector)
        self._log.debug('_gen_selector filter = %s' % filterstr)
        return list(self._client.search(self._basedn, filterstr, self._scope))

    def get(self, selector):
        """Get a child entry by selector, i.e. the value of one of the
        filter attributes (uid for users, cn for groups).

        :returns: Entry
        :raises: NoSuchEntry, Error when more than one entry matches
        """
        results = self._get_selector(selector)
        if len(results) == 0:
            raise NoSuchEntry("No object exists given the filter criteria: %s %s" %
                              (selector, self._get_selector_filter(selector)), dn=self._basedn)
        if len(results) > 1:
            raise Error("Too many objects matched selection criteria: %s %s" %
                        (selector, self._get_selector_filter(selector)), dn=self._basedn)
        return results[0]

    def exists(self, selector):
        """Check if a child entry of our type exists

        :returns: True if it exists
        """
        return len(self._get_selector(selector)) > 0

    def exists_any(self, selector):
        """Check if any entry, whatever its object classes, carries selector
        in one of our filter attributes.
        """
        filterstr = _gen_or(_gen_filter(self._filterattrs, _term_gen(selector)))
        return len(self._client.search(self._basedn, filterstr, self._scope, ['1.1'])) > 0

    def build(self, properties):
        return self.builder().build(properties, self._basedn)

    def create(self, properties):
        """Build and add an entry below our base DN

        :param properties: Attributes for the new entry
        :type properties: dict

        :returns: Entry that was added
        """
        e = self.build(properties)
        self._client.add(e)
        return e
