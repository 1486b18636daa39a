# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

"""The idmprov module.

    Provision POSIX users and groups into an LDAP directory.

    DirectoryClient is the single point of contact with the directory:
    every read and every write performed by the provisioning workflow goes
    through it, and every python-ldap error is translated here into the
    idmprov.exceptions taxonomy.
"""

import ldap
import ldap.sasl
from ldap.controls import SimplePagedResultsControl

from idmprov._constants import DEFAULT_TIMEOUT
from idmprov._entry import Entry
from idmprov._mapped_object import DSLogging
from idmprov.exceptions import (
    Error,
    EntryAlreadyExists,
    NoSuchEntry,
    SchemaViolation,
    AttributeValueExists,
    ConnectionFailure,
    PermissionDenied,
    InvalidArgumentError,
)
from idmprov.utils import ensure_str, ensure_list_bytes, display_log_value

__version__ = '1.0.0'

SCOPES = {
    'base': ldap.SCOPE_BASE,
    'one': ldap.SCOPE_ONELEVEL,
    'subtree': ldap.SCOPE_SUBTREE,
}

MOD_OPERATIONS = {
    'add': ldap.MOD_ADD,
    'replace': ldap.MOD_REPLACE,
    'delete': ldap.MOD_DELETE,
}

# Order matters, the first match wins.
LDAP_ERROR_MAP = [
    (ldap.ALREADY_EXISTS, EntryAlreadyExists),
    (ldap.NO_SUCH_OBJECT, NoSuchEntry),
    (ldap.TYPE_OR_VALUE_EXISTS, AttributeValueExists),
    (ldap.OBJECT_CLASS_VIOLATION, SchemaViolation),
    (ldap.INVALID_SYNTAX, SchemaViolation),
    (ldap.UNDEFINED_TYPE, SchemaViolation),
    (ldap.CONSTRAINT_VIOLATION, SchemaViolation),
    (ldap.NAMING_VIOLATION, SchemaViolation),
    (ldap.INVALID_DN_SYNTAX, SchemaViolation),
    (ldap.NO_SUCH_ATTRIBUTE, SchemaViolation),
    (ldap.NOT_ALLOWED_ON_RDN, SchemaViolation),
    (ldap.INSUFFICIENT_ACCESS, PermissionDenied),
    (ldap.STRONG_AUTH_REQUIRED, PermissionDenied),
    (ldap.INAPPROPRIATE_AUTH, PermissionDenied),
    (ldap.SERVER_DOWN, ConnectionFailure),
    (ldap.TIMEOUT, ConnectionFailure),
    (ldap.TIMELIMIT_EXCEEDED, ConnectionFailure),
    (ldap.CONNECT_ERROR, ConnectionFailure),
    (ldap.INVALID_CREDENTIALS, ConnectionFailure),
    (ldap.UNAVAILABLE, ConnectionFailure),
    (ldap.BUSY, ConnectionFailure),
]


def _ldap_error_desc(e):
    """python-ldap errors carry a dict with desc and optionally info."""
    if len(e.args) >= 1 and isinstance(e.args[0], dict):
        desc = e.args[0].get('desc', type(e).__name__)
        info = e.args[0].get('info')
        if info:
            return '%s: %s' % (desc, ensure_str(info))
        return desc
    if len(e.args) >= 1:
        return str(e.args[0])
    return type(e).__name__


def translate_ldap_error(e, fname, dn=None, attribute=None):
    """Map a python-ldap exception to the idmprov taxonomy.

    :param e: The exception raised by python-ldap
    :type e: ldap.LDAPError
    :param fname: Name of the failing operation, used in the message
    :type fname: str
    :param dn: The DN the operation targeted
    :type dn: str
    :param attribute: The attribute the operation targeted
    :type attribute: str

    :returns: idmprov.exceptions.Error
    """
    msg = '%s failed: %s' % (fname, _ldap_error_desc(e))
    for ldap_exc, exc in LDAP_ERROR_MAP:
        if isinstance(e, ldap_exc):
            return exc(msg, dn=dn, attribute=attribute)
    return Error(msg, dn=dn, attribute=attribute)


class SearchResults(object):
    """The result of DirectoryClient.search.

    Nothing is sent to the directory until the results are first iterated
    or measured. The fetched entries are then kept, so iterating again
    replays the same finite sequence.
    """

    def __init__(self, client, base, scope, filterstr, attrlist, page_size=None):
        self._client = client
        self.base = base
        self.scope = scope
        self.filterstr = filterstr
        self.attrlist = attrlist
        self.page_size = page_size
        self._entries = None

    def _fetch(self):
        if self._entries is None:
            self._entries = self._client._search(self.base, self.scope, self.filterstr,
                                                 self.attrlist, self.page_size)
        return self._entries

    def __iter__(self):
        return iter(self._fetch())

    def __len__(self):
        return len(self._fetch())

    def __bool__(self):
        return len(self) > 0

    def __getitem__(self, idx):
        return self._fetch()[idx]

    def first(self):
        """Return the first entry, or None when nothing matched."""
        entries = self._fetch()
        if len(entries) == 0:
            return None
        return entries[0]


class DirectoryClient(DSLogging):
    """A thin typed wrapper over a python-ldap connection.

    :param uri: The directory endpoint, e.g. ldapi:/// or ldap://host:389
    :type uri: str
    :param binddn: The DN to bind as. None with an ldapi uri autobinds.
    :type binddn: str
    :param bindpw: The password of binddn
    :type bindpw: str
    :param timeout: Seconds before an operation surfaces as ConnectionFailure
    :type timeout: int
    :param verbose: Log at debug level
    :type verbose: bool
    """

    def __init__(self, uri, binddn=None, bindpw=None, timeout=DEFAULT_TIMEOUT, verbose=False):
        super(DirectoryClient, self).__init__(verbose)
        self.uri = uri
        self.binddn = binddn
        self.bindpw = bindpw
        self.timeout = timeout
        self.verbose = verbose
        self._conn = None

    def __str__(self):
        return self.uri

    def __enter__(self):
        if self._conn is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def can_autobind(self):
        """With ldapi and no password, root may bind as itself via SASL EXTERNAL."""
        return self.uri.startswith('ldapi://') and not self.bindpw

    def open(self, conn=None):
        """Connect and bind to the directory.

        :param conn: An already initialized python-ldap LDAPObject. When None
            one is created for self.uri.
        :type conn: ldap.ldapobject.LDAPObject

        :raises: ConnectionFailure, PermissionDenied
        """
        self._log.debug('open(): Connecting to uri %s', self.uri)
        try:
            if conn is None:
                conn = ldap.initialize(self.uri)
            conn.set_option(ldap.OPT_PROTOCOL_VERSION, ldap.VERSION3)
            conn.set_option(ldap.OPT_REFERRALS, 0)
            if self.timeout is not None:
                conn.set_option(ldap.OPT_NETWORK_TIMEOUT, self.timeout)
                conn.set_option(ldap.OPT_TIMEOUT, self.timeout)
            if self.can_autobind():
                self._log.debug("open(): Using root autobind ...")
                conn.sasl_interactive_bind_s("", ldap.sasl.external())
            else:
                if self.binddn is None:
                    raise InvalidArgumentError('A bind DN is required for %s' % self.uri)
                conn.simple_bind_s(self.binddn, self.bindpw or '')
        except ldap.LDAPError as e:
            self._log.debug("Cannot connect to %r as %s", self.uri, self.binddn)
            raise translate_ldap_error(e, 'bind', dn=self.binddn) from e
        self._conn = conn
        self._log.debug("open(): bound as %s", self.binddn or 'autobind')

    def close(self):
        if self._conn is not None:
            try:
                self._conn.unbind_s()
            except ldap.LDAPError as e:
                # The session is gone either way
                self._log.debug("close(): unbind failed: %s", _ldap_error_desc(e))
            self._conn = None

    def _check_open(self):
        if self._conn is None:
            raise ConnectionFailure('Not connected to %s' % self.uri)

    # Wrap the ldap operation to have a clear diagnostic
    def _ldap_op_s(self, op, fname, dn, attribute, *args, **kwargs):
        self._check_open()
        try:
            return getattr(self._conn, op)(*args, **kwargs)
        except ldap.LDAPError as e:
            self._log.debug("%s(%s) on %s: %s", fname, dn, self.uri, _ldap_error_desc(e))
            raise translate_ldap_error(e, fname, dn=dn, attribute=attribute) from e

    def _search(self, base, scope, filterstr, attrlist, page_size=None):
        self._log.debug('search base=%s scope=%s filter=%s attrs=%s', base, scope, filterstr, attrlist)
        try:
            if page_size is None:
                results = self._ldap_op_s('search_ext_s', 'search', base, None,
                                          base, scope, filterstr, attrlist=attrlist)
            else:
                results = self._paged_search(base, scope, filterstr, attrlist, page_size)
        except NoSuchEntry:
            # A missing base simply has nothing below it
            return []
        # Drop continuation references, they have no dn
        return [Entry(r) for r in results if r[0] is not None]

    def _paged_search(self, base, scope, filterstr, attrlist, page_size):
        results = []
        pages = 0
        req_pr_ctrl = SimplePagedResultsControl(True, size=page_size, cookie='')
        while True:
            msgid = self._ldap_op_s('search_ext', 'search', base, None,
                                    base, scope, filterstr, attrlist=attrlist,
                                    serverctrls=[req_pr_ctrl])
            rtype, rdata, rmsgid, rctrls = self._ldap_op_s('result3', 'search', base, None, msgid)
            results.extend(rdata)
            pages += 1
            pctrls = [c for c in rctrls
                      if c.controlType == SimplePagedResultsControl.controlType]
            if pctrls and pctrls[0].cookie:
                req_pr_ctrl.cookie = pctrls[0].cookie
            else:
                break
        self._log.debug('search %s returned %d entries in %d pages', base, len(results), pages)
        return results

    def search(self, base, filterstr='(objectClass=*)', scope='subtree', attrlist=None, page_size=None):
        """Search the directory.

        :param base: The base DN of the search
        :type base: str
        :param filterstr: An LDAP filter
        :type filterstr: str
        :param scope: One of base, one, subtree, or an ldap.SCOPE_* constant
        :type scope: str
        :param attrlist: Attributes to return, None for all user attributes
        :type attrlist: list
        :param page_size: Use the simple paged results control with this page size
        :type page_size: int

        :returns: SearchResults, empty when nothing matches or base is missing
        """
        if isinstance(scope, str):
            try:
                scope = SCOPES[scope]
            except KeyError:
                raise InvalidArgumentError('Invalid search scope %s' % scope)
        return SearchResults(self, base, scope, filterstr, attrlist, page_size)

    def exists(self, dn):
        """Check if the entry dn exists

        :returns: True if it exists
        """
        return len(self.search(dn, scope='base', attrlist=['1.1'])) > 0

    def add(self, entry):
        """Add a complete entry to the directory.

        :param entry: The entry to add
        :type entry: idmprov.Entry

        :raises: EntryAlreadyExists, SchemaViolation, NoSuchEntry,
            PermissionDenied, ConnectionFailure
        """
        self._log.debug('Creating %s : %s', entry.dn, entry.display_data())
        self._ldap_op_s('add_ext_s', 'add', entry.dn, None, entry.dn, entry.toTupleList())
        self._log.debug('Created entry %s', entry.dn)

    def modify_attribute(self, dn, attribute, operation, values=None):
        """Perform a single modification on one attribute of dn.

        :param dn: The entry to modify
        :type dn: str
        :param attribute: The attribute name
        :type attribute: str
        :param operation: add, replace or delete
        :type operation: str
        :param values: A value, a list of values, or None to delete all values
        :type values: list

        :raises: NoSuchEntry, AttributeValueExists, SchemaViolation,
            PermissionDenied, ConnectionFailure
        """
        try:
            action = MOD_OPERATIONS[operation]
        except KeyError:
            raise InvalidArgumentError('Invalid modify operation %s' % operation, dn=dn, attribute=attribute)
        if isinstance(values, (list, tuple)):
            values = ensure_list_bytes(values)
        elif values is not None:
            values = ensure_list_bytes([values])
        elif action != ldap.MOD_DELETE:
            raise InvalidArgumentError('Only delete may omit values', dn=dn, attribute=attribute)
        self._log.debug("%s set %s: (%r, %r)", dn, operation.upper(), attribute,
                        display_log_value(attribute, values))
        self._ldap_op_s('modify_ext_s', 'modify', dn, attribute, dn, [(action, attribute, values)])

# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4
