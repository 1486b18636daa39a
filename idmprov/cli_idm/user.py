# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016, William Brown <william at blackhats.net.au>
# Copyright (C) 2023 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import json

from idmprov.cli_base import _get_arg
from idmprov.idm.user import UserAccounts
from idmprov.provision import ProvisioningWorkflow, PrivateGroupPolicy, SharedGroupPolicy

RDN = 'uid'


def _format_result(log, result, args):
    if args and args.json:
        log.info(json.dumps({"type": "result", "items": result._asdict()}, indent=4))
    else:
        log.info('uidNumber: %d' % result.uid_number)
        log.info('gidNumber: %d' % result.gid_number)
        log.info('user dn: %s' % result.user_dn)
        log.info('group dn: %s' % result.group_dn)
        log.info('homeDirectory: %s' % result.home_directory)


def add_user(client, config, log, args):
    username = _get_arg(args.username, msg="Enter %s to create" % RDN)
    password = _get_arg(args.password, msg="Enter password for %s" % username,
                        hidden=True, confirm=True)
    display_name = args.display_name or None
    if getattr(args, 'group', None):
        policy = SharedGroupPolicy(args.group, client.verbose)
    else:
        policy = PrivateGroupPolicy(client.verbose)
    workflow = ProvisioningWorkflow(client, config, group_policy=policy)
    result = workflow.provision(username, password, display_name)
    _format_result(log.getChild('_format_result'), result, args)
    return result


def show_user(client, config, log, args):
    username = _get_arg(args.username, msg="Enter %s to retrieve" % RDN)
    users = UserAccounts(client, config.basedn)
    entry = users.get(username)
    shown = entry.copy()
    if shown.hasAttr('userPassword'):
        shown.setValues('userPassword', '********')
    if args and args.json:
        log.info(shown.to_json())
    else:
        log.info(str(shown).rstrip())
    return entry


def create_parser(subparsers):
    add_parser = subparsers.add_parser('add-user',
                                       help='Provision a posix user and its primary group. The People and Groups '
                                            'organizational units are created when missing.')
    add_parser.set_defaults(func=add_user)
    add_parser.add_argument('username', nargs='?', help='The login name')
    add_parser.add_argument('password', nargs='?',
                            help='The cleartext password, prompted for when omitted')
    add_parser.add_argument('display_name', nargs='?', help='The full name, defaults to the login name')
    add_parser.add_argument('--group', help='Use this existing group as primary group instead of '
                                            'a private group named after the user')

    show_parser = subparsers.add_parser('show-user', help='Display a posix user')
    show_parser.set_defaults(func=show_user)
    show_parser.add_argument('username', nargs='?', help='The login name')
