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

"""Digests and RSA signature verification

Signatures are RSASSA-PKCS1-v1_5 with SHA256 over the canonical payload
encoding, i.e. what `openssl dgst -sha256 -sign` produces.
"""

import base64
import binascii
import io
import logging

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from opentimestamps.core.op import OpSHA256

from resttimeclient.errors import ClientError
from resttimeclient.timestamp import DecodeError

class KeyLoadError(ClientError):
    """The public key file is missing, unreadable or not an RSA public key"""

class SignatureDecodeError(DecodeError):
    """The signature field is not valid base64

    Distinct from a signature that decodes fine but does not verify.
    """


def digest(msg):
    """SHA256 digest of msg"""
    return OpSHA256().hash_fd(io.BytesIO(msg))


def digest_matches(claimed_digest, actual_digest):
    """Compare a server-supplied digest string with an actual digest

    The server's digest field has no fixed encoding; hex (either case) and
    standard base64 are recognised.
    """
    claimed_digest = claimed_digest.strip()
    if not claimed_digest:
        return False

    if claimed_digest.lower() == binascii.hexlify(actual_digest).decode('utf8'):
        return True

    return claimed_digest == base64.standard_b64encode(actual_digest).decode('utf8')


def decode_signature(signature_b64):
    """Decode a base64 signature into raw bytes

    Line breaks are ignored; anything else outside the standard base64
    alphabet, or bad padding, raises SignatureDecodeError.
    """
    cleaned = signature_b64.replace('\r', '').replace('\n', '')
    try:
        return base64.b64decode(cleaned.encode('ascii'), validate=True)
    except (UnicodeEncodeError, binascii.Error) as exp:
        raise SignatureDecodeError('Signature is not valid base64: %s' % exp)


def load_public_key(path):
    """Load an RSA public key

    Accepts PEM SubjectPublicKeyInfo, PEM PKCS#1 "RSA PUBLIC KEY", PEM X.509
    certificates and DER SubjectPublicKeyInfo.
    """
    try:
        with open(path, 'rb') as fd:
            key_data = fd.read()
    except OSError as exp:
        raise KeyLoadError('Could not read public key %r: %s' % (path, exp))

    try:
        if b'-----BEGIN CERTIFICATE-----' in key_data:
            public_key = x509.load_pem_x509_certificate(key_data).public_key()
        elif b'-----BEGIN' in key_data:
            public_key = serialization.load_pem_public_key(key_data)
        else:
            public_key = serialization.load_der_public_key(key_data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exp:
        raise KeyLoadError('Could not parse public key %r: %s' % (path, exp))

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyLoadError('Public key %r is not an RSA key' % path)

    logging.debug("Loaded %d-bit RSA public key from %s" % (public_key.key_size, path))
    return public_key


def verify_signature(public_key, signature_b64, msg):
    """Verify a base64 signature over msg

    public_key may be an RSA public key object or the path of a key file.

    Returns True if the signature is valid, False if it is not. Problems that
    prevent checking at all raise instead: SignatureDecodeError for malformed
    base64, KeyLoadError for an unusable key.
    """
    sig = decode_signature(signature_b64)

    if not isinstance(public_key, rsa.RSAPublicKey):
        public_key = load_public_key(public_key)

    try:
        public_key.verify(sig, msg, padding.PKCS1v15(), hashes.SHA256())
    except InvalidSignature:
        return False

    return True
