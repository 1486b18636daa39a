# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import json

from idmprov.idm.allocator import IdAllocator
from idmprov.idm.posixgroup import PosixGroups
from idmprov.idm.user import UserAccounts

# kind -> (manager class, attribute, config floor)
KINDS = {
    'uid': (UserAccounts, 'uidNumber', 'uid_min'),
    'gid': (PosixGroups, 'gidNumber', 'gid_min'),
}


def next_id(client, config, log, args):
    manager_class, attribute, floor_attr = KINDS[args.kind]
    mc = manager_class(client, config.basedn)
    value = IdAllocator(client).next_id(mc.basedn, attribute, getattr(config, floor_attr))
    if args and args.json:
        log.info(json.dumps({"type": "result", "items": {attribute: value}}, indent=4))
    else:
        log.info('%s: %d' % (attribute, value))
    return value


def create_parser(subparsers):
    next_parser = subparsers.add_parser('next-id', help='Display the id the next add-user would allocate. '
                                                        'Nothing is reserved.')
    next_parser.set_defaults(func=next_id)
    next_parser.add_argument('kind', choices=sorted(KINDS.keys()), help='uidNumber or gidNumber')
