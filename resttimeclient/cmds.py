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
import os
import sys

from bitcoin.core import b2x

from resttimeclient.artifacts import ArtifactWriteError, DATA_FILENAME, SIGNATURE_FILENAME, write_artifacts
from resttimeclient.crypto import KeyLoadError, SignatureDecodeError, \
    decode_signature, digest, digest_matches, load_public_key, verify_signature
from resttimeclient.errors import ConfigError
from resttimeclient.remote import DEFAULT_TIMEOUT, FetchError, fetch
from resttimeclient.timestamp import DecodeError, EncodeError, Envelope

# Exit statuses, one per failure class. These are relied upon by scripts, so
# never renumber them.
EXIT_VERIFICATION_FAILED = 1
EXIT_BAD_OPTIONS = 9
EXIT_NO_TARGET = 10
EXIT_FETCH_FAILED = 100
EXIT_DECODE_FAILED = 110
EXIT_ENCODE_FAILED = 111
EXIT_BAD_SIGNATURE_ENCODING = 112
EXIT_DATA_WRITE_FAILED = 115
EXIT_SIGNATURE_WRITE_FAILED = 116
EXIT_KEY_LOAD_FAILED = 120

VERIFIED = 'verified'
VERIFICATION_FAILED = 'failed'
UNVERIFIED = 'unverified'


def exit_status(exp):
    """Map a pipeline error to its exit status"""
    if isinstance(exp, ArtifactWriteError):
        if exp.filename == DATA_FILENAME:
            return EXIT_DATA_WRITE_FAILED
        return EXIT_SIGNATURE_WRITE_FAILED

    # Order matters: SignatureDecodeError is a DecodeError
    for cls, status in ((ConfigError, EXIT_NO_TARGET),
                        (FetchError, EXIT_FETCH_FAILED),
                        (SignatureDecodeError, EXIT_BAD_SIGNATURE_ENCODING),
                        (DecodeError, EXIT_DECODE_FAILED),
                        (EncodeError, EXIT_ENCODE_FAILED),
                        (KeyLoadError, EXIT_KEY_LOAD_FAILED)):
        if isinstance(exp, cls):
            return status

    raise ValueError('No exit status for %r' % exp)


def report_digest(envelope, payload_digest):
    print("Digest for data is: %s" % b2x(payload_digest))

    if not envelope.digest:
        logging.debug("Time server did not supply a digest")
    elif digest_matches(envelope.digest, payload_digest):
        logging.info("Digest supplied by the time server matches")
    else:
        # Informational only; the signature is what counts.
        logging.warning("Digest supplied by the time server differs: %s" % envelope.digest)


def fetch_timestamp(url, public_key_file=None, timeout=DEFAULT_TIMEOUT, directory='.'):
    """Fetch, store and optionally verify a signed timestamp

    Returns VERIFIED, VERIFICATION_FAILED, or UNVERIFIED if no public key was
    given. Any other problem raises a ClientError subclass; see exit_status().
    """
    if not url:
        raise ConfigError("No remote URL specified")

    logging.debug("URL is %s" % url)
    body = fetch(url, timeout=timeout)

    envelope = Envelope.deserialize(body)
    logging.debug("Got %r" % envelope)

    msg = envelope.data.serialize()
    print("Timestamp data:")
    print(envelope.data.str_pretty())

    sig = decode_signature(envelope.signature)

    (data_path, sig_path) = write_artifacts(msg, sig, directory)

    report_digest(envelope, digest(msg))

    if public_key_file is None:
        print("Signature NOT verified: no public key supplied. Message stored as %s, signature as %s." %
              (data_path, sig_path))
        return UNVERIFIED

    logging.debug("Public key file is %s" % public_key_file)
    public_key = load_public_key(public_key_file)

    if verify_signature(public_key, envelope.signature, msg):
        print("Verification successful. Message stored as %s, signature as %s.\n"
              "Please verify again with something like:\n"
              "openssl dgst -sha256 -verify %s -signature %s %s" %
              (data_path, sig_path, public_key_file, SIGNATURE_FILENAME, DATA_FILENAME))
        return VERIFIED

    else:
        print("Verification FAILED!")
        return VERIFICATION_FAILED


def fetch_command(args):
    try:
        result = fetch_timestamp(args.url,
                                 public_key_file=args.public_key_file,
                                 timeout=args.timeout,
                                 directory=os.curdir)

    except ConfigError as exp:
        logging.error("%s" % exp)
        args.parser.print_usage(sys.stderr)
        sys.exit(exit_status(exp))

    except (FetchError, DecodeError, EncodeError, ArtifactWriteError, KeyLoadError) as exp:
        logging.error("%s: %s" % (exp.__class__.__name__, exp))
        sys.exit(exit_status(exp))

    if result == VERIFICATION_FAILED:
        logging.warning("Signature does not match the timestamp data")
        if args.strict:
            sys.exit(EXIT_VERIFICATION_FAILED)
