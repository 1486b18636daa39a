# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016, William Brown <william at blackhats.net.au>
# Copyright (C) 2023 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import argparse
import json

import argcomplete

from idmprov._constants import ExitStatus, DSRC_HOME
from idmprov.cli_base import (
    build_config,
    connect_instance,
    disconnect_instance,
    format_error_to_dict,
    setup_script_logger,
)
from idmprov.cli_base.dsrc import DEFAULT_SECTION
from idmprov.cli_idm import initialise as cli_init
from idmprov.cli_idm import nextid as cli_nextid
from idmprov.cli_idm import user as cli_user
from idmprov.exceptions import Error
from idmprov.utils import display_log_data


def build_parser():
    parser = argparse.ArgumentParser(prog='idmprov',
                                     description='Provision posix users and their groups into an LDAP directory')
    parser.add_argument('-v', '--verbose',
                        help="Display verbose operation tracing during command execution",
                        action='store_true', default=False)
    parser.add_argument('-j', '--json',
                        help="Return result in JSON object",
                        action='store_true', default=False)
    parser.add_argument('-H', '--uri', help="The directory endpoint (DIRECTORY_ENDPOINT)")
    parser.add_argument('-b', '--basedn', help="Base DN (root naming context) of the directory (BASE_DN)")
    parser.add_argument('-D', '--binddn', help="The account to bind as (ADMIN_DN)")
    passwords = parser.add_mutually_exclusive_group()
    passwords.add_argument('-w', '--bindpw', help="Password for binddn (ADMIN_PASS)")
    passwords.add_argument('-W', '--prompt', action='store_true', default=False,
                           help="Prompt for the password of binddn")
    passwords.add_argument('-y', '--pwdfile', help="File containing the password of binddn")
    parser.add_argument('--rc', default=DSRC_HOME, help="The ini file holding default settings")
    parser.add_argument('--section', default=DEFAULT_SECTION, help="The section of the ini file to use")
    parser.add_argument('--lock-file', dest='lock_file',
                        help="Serialize provisioning runs on this file (PROVISION_LOCK)")

    subparsers = parser.add_subparsers(help="command")
    cli_user.create_parser(subparsers)
    cli_init.create_parser(subparsers)
    cli_nextid.create_parser(subparsers)
    return parser


def _report_error(log, error, as_json):
    if as_json:
        log.error(json.dumps(format_error_to_dict(error), indent=4))
    else:
        log.error("Error: %s" % error)


def main(argv=None, environ=None, log=None):
    """Run the idmprov command.

    :param argv: Arguments, sys.argv[1:] when None
    :type argv: list
    :param environ: Mapping of knobs, os.environ when None
    :type environ: dict
    :param log: Logger for results and errors, a stdout logger when None
    :type log: logging.Logger

    :returns: the exit status
    """
    parser = build_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)

    if log is None:
        log = setup_script_logger('idmprov', args.verbose)
    log.debug("Called with: %s" % display_log_data(vars(args)))

    if not hasattr(args, 'func'):
        parser.print_help()
        return int(ExitStatus.INVALID_ARGUMENT)

    client = None
    status = ExitStatus.SUCCESS
    try:
        config = build_config(args, log, environ)
        client = connect_instance(config, args.verbose)
        args.func(client, config, log, args)
    except Error as e:
        log.debug(e, exc_info=True)
        _report_error(log, e, args.json)
        status = e.exit_status
    finally:
        disconnect_instance(client)
    return int(status)
