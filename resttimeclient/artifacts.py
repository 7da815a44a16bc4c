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
import tempfile

from resttimeclient.errors import ClientError

DATA_FILENAME = 'data.txt'
SIGNATURE_FILENAME = 'data.sig'

ARTIFACT_MODE = 0o644

class ArtifactWriteError(ClientError):
    """Writing one of the artifacts failed"""

    def __init__(self, filename, reason):
        super().__init__('Could not write %s: %s' % (filename, reason))
        self.filename = filename
        self.reason = reason


def _write_temp(directory, filename, contents):
    fd, temp_path = tempfile.mkstemp(dir=directory, prefix='.' + filename + '.')
    try:
        with os.fdopen(fd, 'wb') as temp_fd:
            temp_fd.write(contents)
            temp_fd.flush()
            os.fsync(temp_fd.fileno())
        os.chmod(temp_path, ARTIFACT_MODE)
    except OSError:
        os.unlink(temp_path)
        raise
    return temp_path


def _discard(temp_paths):
    for temp_path in temp_paths:
        try:
            os.unlink(temp_path)
        except FileNotFoundError:
            pass


def write_artifacts(data, signature, directory='.'):
    """Write the canonical payload and the raw signature

    Both are written to temporary files first and only renamed over
    DATA_FILENAME and SIGNATURE_FILENAME once both were written, so a failed
    write leaves any previous artifacts alone. The renames themselves are not
    atomic as a pair: if the signature rename fails the new data file stays.

    Returns the (data_path, signature_path) tuple. Raises ArtifactWriteError
    naming the artifact that failed.
    """
    targets = ((DATA_FILENAME, data),
               (SIGNATURE_FILENAME, signature))

    temp_paths = []
    for filename, contents in targets:
        try:
            temp_paths.append(_write_temp(directory, filename, contents))
        except OSError as exp:
            _discard(temp_paths)
            raise ArtifactWriteError(filename, exp)

    final_paths = []
    for (filename, _), temp_path in zip(targets, temp_paths):
        path = os.path.join(directory, filename)
        try:
            os.replace(temp_path, path)
        except OSError as exp:
            _discard(temp_paths[len(final_paths):])
            raise ArtifactWriteError(filename, exp)

        logging.debug("Wrote %s" % path)
        final_paths.append(path)

    return tuple(final_paths)
