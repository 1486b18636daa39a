# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2015 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import io
import json
import ldif
from ldap.cidict import cidict

from idmprov.utils import (ensure_str, ensure_list_str, ensure_list_bytes,
                           display_log_data)


class Entry(object):
    """This class represents an LDAP Entry object.

        An LDAP entry consists of a DN and a list of attributes.
        Each attribute consists of a name and a *list* of str values.
            ex. {
                'uid': ['alice'],
                'cn': ['Alice'],
                'objectclass': ['top', 'posixAccount']
             }

        Attribute names are case insensitive, values keep their order.

        Instance variables:
          dn - string - the string DN of the entry
          data - cidict - case insensitive dict of the attributes and values
    """

    def __init__(self, entrydata=None):
        """entrydata is either:
            * a search result tuple as returned by python-ldap -> (dn, {dict...})
            * a string DN, to start a new empty entry
            * None.
        """
        self.data = cidict()
        self.dn = None
        if entrydata:
            if isinstance(entrydata, tuple):
                self.dn = ensure_str(entrydata[0])
                for k, v in entrydata[1].items():
                    self.data[ensure_str(k)] = ensure_list_str(v)
            elif isinstance(entrydata, str):
                if '=' not in entrydata:
                    raise ValueError('Entry dn must contain "="')
                self.dn = entrydata

    def __bool__(self):
        return self.data is not None and len(self.data) > 0

    def __eq__(self, other):
        """Two entries are equal with the same DN and the same value sets.

        Both must have been retrieved with the same attribute list.
        """
        if not isinstance(other, Entry):
            return False
        if self.dn is None or other.dn is None:
            return self.dn is other.dn
        if self.dn.lower() != other.dn.lower():
            return False
        if set(a.lower() for a in self.getAttrs()) != set(a.lower() for a in other.getAttrs()):
            return False
        for key in self.getAttrs():
            if set(self.getValues(key)) != set(other.getValues(key)):
                return False
        return True

    def __ne__(self, other):
        return not self.__eq__(other)

    def hasAttr(self, name):
        return ensure_str(name) in self.data

    def __getitem__(self, name):
        return self.getValues(name)

    def getValues(self, name):
        """Get the list (array) of values for the attribute named name"""
        return list(self.data.get(name, []))

    def getValue(self, name):
        """Get the first value for the attribute named name"""
        return self.data.get(name, [None])[0]

    def hasValue(self, name, val):
        """True if the given attribute is present and has the given value"""
        if not self.hasAttr(name):
            return False
        return ensure_str(val) in self.data.get(name)

    def setValues(self, name, *value):
        """
        Value passed in may be a single value, several values,
         or a single sequence.
        For example:
           ent.setValues('name', 'value')
           ent.setValues('name', 'value1', 'value2', ..., 'valueN')
           ent.setValues('name', ['value1', 'value2', ..., 'valueN'])
        """
        if len(value) == 1 and isinstance(value[0], (list, tuple)):
            value = value[0]
        self.data[name] = [str(v) for v in value]

    def getAttrs(self):
        if not self.data:
            return []
        return list(self.data.keys())

    @property
    def objectclasses(self):
        return set(v.lower() for v in self.getValues('objectClass'))

    def update(self, dct):
        """Update passthru to the data attribute."""
        for k, v in list(dct.items()):
            if isinstance(v, (list, tuple)):
                self.setValues(k, list(v))
            else:
                self.setValues(k, v)

    def copy(self):
        e = Entry(self.dn)
        for k in self.getAttrs():
            e.data[k] = list(self.data[k])
        return e

    def toTupleList(self):
        """
        Convert the attrs and values to a list of 2-tuples of
        (attribute name, list of bytes values), as python-ldap add expects.
        """
        return [(k, ensure_list_bytes(self.data[k])) for k in self.data.keys()]

    def display_data(self):
        return display_log_data(dict(self.data))

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        """Convert the Entry to its LDIF representation"""
        sio = io.StringIO()
        newdata = {}
        for k, v in self.data.items():
            newdata[k] = ensure_list_bytes(v)
        # No line wrapping
        ldif.LDIFWriter(sio, [], 1000).unparse(self.dn, newdata)
        return sio.getvalue()

    def getJSONEntry(self):
        return {'dn': self.dn, 'attrs': {k.lower(): v for k, v in self.data.items()}}

    def to_json(self):
        return json.dumps({"type": "entry", **self.getJSONEntry()}, indent=4)
