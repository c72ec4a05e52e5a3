"""Binary record codec for transient snapshot files.

Records are written as a sequence of cloudpickle frames, one per record,
so a snapshot can be streamed back without loading it whole. The format
follows the Python interpreter and library versions that wrote it and is
not meant for permanent storage.
"""

import pickle
from typing import Any, Iterable, Iterator

import cloudpickle


def write_records(path: str, records: Iterable[Any], exclusive: bool = True) -> int:
    """Write records to ``path``.

    Args:
        path: Destination file
        records: Records to serialize, in order
        exclusive: Fail with FileExistsError if ``path`` already exists

    Returns:
        Number of records written
    """
    count = 0
    with open(path, "xb" if exclusive else "wb") as f:
        for record in records:
            cloudpickle.dump(record, f, protocol=pickle.HIGHEST_PROTOCOL)
            count += 1
    return count


def read_records(path: str) -> Iterator[Any]:
    """Stream records back from a file written by :func:`write_records`."""
    with open(path, "rb") as f:
        while True:
            try:
                yield cloudpickle.load(f)
            except EOFError:
                return
