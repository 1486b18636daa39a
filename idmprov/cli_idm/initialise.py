# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2017 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import json

from idmprov.provision import ProvisioningWorkflow


def initialise(client, config, log, args):
    workflow = ProvisioningWorkflow(client, config)
    created = workflow.ensure_containers()
    if args and args.json:
        log.info(json.dumps({"type": "list", "items": created}, indent=4))
    elif len(created) == 0:
        log.info("People and Groups already exist under %s" % config.basedn)
    else:
        for dn in created:
            log.info("Created %s" % dn)
    return created


def create_parser(subparsers):
    initialise_parser = subparsers.add_parser('init', help="Create the People and Groups organizational units "
                                                           "when they are missing")
    initialise_parser.set_defaults(func=initialise)
