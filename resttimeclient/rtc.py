# Copyright (C) 2024 The REST Time Client developers
#
# This file is part of the REST Time Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the REST Time Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

import logging
import logging.handlers
import os
import sys

import resttimeclient
import resttimeclient.args

SYSLOG_SOCKET = '/dev/log'


def setup_logging(verbosity, debug=False, syslog=False):
    logging.basicConfig(format='%(message)s')

    if debug or verbosity > 0:
        logging.root.setLevel(logging.DEBUG)
    elif verbosity == 0:
        logging.root.setLevel(logging.INFO)
    elif verbosity == -1:
        logging.root.setLevel(logging.WARNING)
    elif verbosity < -1:
        logging.root.setLevel(logging.ERROR)

    if syslog:
        if os.path.exists(SYSLOG_SOCKET):
            handler = logging.handlers.SysLogHandler(address=SYSLOG_SOCKET)
        else:
            handler = logging.handlers.SysLogHandler()
        handler.setFormatter(logging.Formatter('rtc: %(levelname)s %(message)s'))
        logging.root.addHandler(handler)


def main():
    args = resttimeclient.args.parse_rtc_args(sys.argv[1:])

    setup_logging(args.verbosity, debug=args.debug, syslog=args.syslog)

    logging.debug("Debug is enabled.")
    logging.info("rtc: version %s: start" % resttimeclient.__version__)

    args.cmd_func(args)


if __name__ == '__main__':
    main()
