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

import argparse
import logging
import os
import socket
import sys

import resttimeclient
import resttimeclient.cmds
import resttimeclient.config
import resttimeclient.remote


def make_arg_parser():
    parser = argparse.ArgumentParser(prog='rtc',
                                     description="Fetch a signed timestamp from a REST time server, "
                                                 "verify it, and store it as data.txt and data.sig.")
    parser.add_argument('--version', action='version', version='v%s' % resttimeclient.__version__)

    parser.add_argument("-q", "--quiet", action="count", default=0,
                        help="Be more quiet.")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Be more verbose. Both -v and -q may be used multiple times.")
    parser.add_argument("-d", "--debug", action="store_true", default=False,
                        help="Enable debug output.")
    parser.add_argument("-l", "--logging", dest='syslog', action="store_true", default=False,
                        help="Log to syslog as well as stderr.")

    parser.add_argument("-k", "--public-key-file", metavar='FILE', dest='public_key_file', type=str,
                        default=None,
                        help="Public key to verify the signature with. If not given, "
                             "the signature is stored but not verified.")

    parser.add_argument("--timeout", type=float, default=None,
                        help="Seconds to wait for the time server. Default: %d" %
                             resttimeclient.remote.DEFAULT_TIMEOUT)

    parser.add_argument("--strict", action="store_const", const=True, default=None,
                        help="Exit with status %d if the signature does not verify." %
                             resttimeclient.cmds.EXIT_VERIFICATION_FAILED)

    parser.add_argument("--config", dest='config_file', metavar='FILE', type=str, default=None,
                        help="Configuration file. Default: %s" % resttimeclient.config.default_config_path())

    parser.add_argument("--socks5-proxy", type=str, default=None,
                        help="Route all traffic through a socks5 proxy, "
                              "including DNS queries. The default port is 1080. "
                              "Format: domain[:port] (e.g. localhost:9050)")

    parser.add_argument('url', metavar='URL', type=str, nargs='?', default='',
                        help='URL of the time server')

    return parser


SOCKS5_DEFAULT_PORT = 1080


def parse_proxy_address(proxy):
    """Split HOST[:PORT] into (host, port)

    Raises ValueError if the port isn't a usable TCP port.
    """
    host, sep, port = proxy.rpartition(':')
    if not sep:
        return (proxy, SOCKS5_DEFAULT_PORT)

    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ValueError("SOCKS5 proxy port must be an integer between 1 and 65535; got %s" % port)
    return (host, int(port))


def setup_socks5_proxy(proxy, parser):
    """Route every new connection through a SOCKS5 proxy"""
    try:
        import socks
    except ImportError as exp:
        logging.error("Can not use SOCKS5 proxy: %s" % exp)
        sys.exit(resttimeclient.cmds.EXIT_BAD_OPTIONS)

    try:
        (host, port) = parse_proxy_address(proxy)
    except ValueError as exp:
        parser.error(str(exp))

    logging.debug("Using SOCKS5 proxy %s:%d" % (host, port))
    socks.set_default_proxy(socks.SOCKS5, host, port)

    socket.socket = socks.socksocket

    # Hostnames are resolved by the proxy, not locally
    def create_connection(address, timeout=None, source_address=None):
        sock = socks.socksocket()
        if timeout is not None:
            sock.settimeout(timeout)
        if source_address is not None:
            sock.bind(source_address)
        sock.connect(address)
        return sock
    socket.create_connection = create_connection


def handle_common_options(args, parser):
    """Merge command line options with the configuration file

    Command line options take precedence.
    """
    args.parser = parser
    args.verbosity = args.verbose - args.quiet

    try:
        config = resttimeclient.config.ClientConfig(args.config_file)
    except resttimeclient.config.ConfigFileError as exp:
        logging.error("%s" % exp)
        sys.exit(resttimeclient.cmds.EXIT_BAD_OPTIONS)

    if args.public_key_file is None:
        args.public_key_file = config.public_key_file
    elif args.public_key_file:
        args.public_key_file = os.path.expanduser(args.public_key_file)
    else:
        args.public_key_file = None

    if args.timeout is None:
        args.timeout = config.timeout
    elif args.timeout <= 0:
        logging.error("Timeout must be positive; got %s" % args.timeout)
        sys.exit(resttimeclient.cmds.EXIT_BAD_OPTIONS)

    if args.strict is None:
        args.strict = config.strict

    if args.socks5_proxy is None:
        args.socks5_proxy = config.socks5_proxy

    if args.socks5_proxy is not None:
        setup_socks5_proxy(args.socks5_proxy, parser)

    return args


def parse_rtc_args(raw_args):
    parser = make_arg_parser()
    parser.set_defaults(cmd_func=resttimeclient.cmds.fetch_command)

    args = parser.parse_args(raw_args)
    args = handle_common_options(args, parser)

    return args
