# Reader and writer for NScripter SAR archives (arc.sar and friends).
# Layout: optional header (uint16 count, uint32 data start), then one record per file
# (name, 0x00, uint32 data origin, uint32 data size), then every payload back to back.
# All integers are big endian and data origins are relative to the data region start.
# The header is what the engine reads; {'header': False} gives the bare table layout, whose
# entry count must then come from the caller as 'entry_count'.
import struct
from collections import namedtuple
from dataclasses import dataclass

from sarerror import (
    SarError,
    MalformedEntry,
    TruncatedHeader,
    InvalidName,
    OutOfBoundsRead,
    PayloadTooLarge,
    IoFailure,
)
from sarstream import BinaryStream

COUNT_FORMAT = '>H'
OFFSET_FORMAT = '>I'
HEADER_SIZE = struct.calcsize(COUNT_FORMAT) + struct.calcsize(OFFSET_FORMAT)
ENTRY_FORMAT = '>II'
ENTRY_PAIR_SIZE = struct.calcsize(ENTRY_FORMAT)
UINT16_MAX = 0xFFFF
UINT32_MAX = 0xFFFFFFFF
COPY_CHUNK_SIZE = 0x10000
# Japanese Windows builds of the engine store Shift-JIS names
DEFAULT_ENCODING = 'cp932'

LogicalFile = namedtuple('LogicalFile', ['name', 'data'])


@dataclass(frozen=True)
class EntryRecord:
    name: bytes
    data_origin: int
    data_size: int


@dataclass(frozen=True)
class ArchiveTable:
    entries: tuple
    data_region_start: int

    @property
    def data_size(self):
        return sum(entry.data_size for entry in self.entries)


def _wrap(stream):
    if isinstance(stream, BinaryStream):
        return stream
    return BinaryStream(stream)


def entry_size(name):
    return len(name) + 1 + ENTRY_PAIR_SIZE


def check_name(name, index=None):
    if not isinstance(name, (bytes, bytearray)):
        raise TypeError(f"Entry names must be bytes, not {type(name).__name__}")
    if b'\0' in name:
        raise InvalidName("Name contains a NUL byte", index=index, name=bytes(name))


def read_entry(stream, index=None):
    """Decode one record at the cursor; the cursor ends up on the next record."""
    stream = _wrap(stream)
    offset = stream.tell()
    name = bytearray()
    while True:
        byte = stream.read_byte()
        if byte is None:
            raise MalformedEntry("Stream ended before the name terminator",
                                 index=index, name=bytes(name), offset=offset)
        if byte == b'\0':
            break
        name += byte

    try:
        data_origin, data_size = struct.unpack(ENTRY_FORMAT, stream.read_exact(ENTRY_PAIR_SIZE))
    except EOFError as e:
        raise TruncatedHeader("Stream ended inside the offset/size pair",
                              index=index, name=bytes(name), offset=offset) from e
    return EntryRecord(bytes(name), data_origin, data_size)


def write_entry(stream, entry, index=None):
    check_name(entry.name, index)
    for value in (entry.data_origin, entry.data_size):
        if not 0 <= value <= UINT32_MAX:
            raise PayloadTooLarge("Field does not fit in 32 bits",
                                  index=index, name=bytes(entry.name), offset=value)
    record = bytes(entry.name) + b'\0' + struct.pack(ENTRY_FORMAT, entry.data_origin, entry.data_size)
    _wrap(stream).append(record)


def build_table(files, base=0):
    """Lay out the entry table for ``files``.

    The first pass sizes the table so the data region start is known; the
    second assigns each file its origin relative to that start. ``base`` is
    the size of whatever precedes the table (the SAR header).
    """
    data_region_start = base
    for index, f in enumerate(files):
        check_name(f.name, index)
        data_region_start += entry_size(f.name)
    if data_region_start > UINT32_MAX:
        raise PayloadTooLarge("Entry table does not fit below 4 GiB", offset=data_region_start)

    entries = []
    data_origin = 0
    for index, f in enumerate(files):
        data_size = len(f.data)
        if data_size > UINT32_MAX:
            raise PayloadTooLarge(f"Payload of {data_size} bytes does not fit in 32 bits",
                                  index=index, name=bytes(f.name))
        if data_origin > UINT32_MAX:
            raise PayloadTooLarge("Data origin does not fit in 32 bits",
                                  index=index, name=bytes(f.name), offset=data_origin)
        entries.append(EntryRecord(bytes(f.name), data_origin, data_size))
        data_origin += data_size

    return ArchiveTable(tuple(entries), data_region_start)


def read_table(stream, count):
    stream = _wrap(stream)
    entries = tuple(read_entry(stream, index) for index in range(count))
    return ArchiveTable(entries, stream.tell())


def write_table(stream, table):
    stream = _wrap(stream)
    for index, entry in enumerate(table.entries):
        write_entry(stream, entry, index)


def read_header(stream):
    stream = _wrap(stream)
    offset = stream.tell()
    try:
        return stream.read_uint(COUNT_FORMAT), stream.read_uint(OFFSET_FORMAT)
    except EOFError as e:
        raise TruncatedHeader("Archive header is truncated", offset=offset) from e


def read_archive_table(stream, options=None):
    """Decode the table of an archive that starts at offset 0 of ``stream``.

    With ``header`` (default) the entry count comes from the SAR header,
    otherwise the caller has to pass it as ``entry_count``.
    """
    options = options or {}
    stream = _wrap(stream)
    stream.seek(0)

    if not options.get('header', True):
        count = options.get('entry_count')
        if count is None:
            raise ValueError("entry_count is required for archives without a header")
        return read_table(stream, count)

    count, data_region_start = read_header(stream)
    table = read_table(stream, count)
    if data_region_start < table.data_region_start:
        raise MalformedEntry(f"Data region starts inside the entry table (table ends at 0x{table.data_region_start:08X})",
                             offset=data_region_start)
    return ArchiveTable(table.entries, data_region_start)


def pack(output_stream, files, options=None):
    options = options or {}
    files = list(files)
    stream = _wrap(output_stream)

    if options.get('header', True):
        if len(files) > UINT16_MAX:
            raise PayloadTooLarge(f"{len(files)} entries do not fit in the header count")
        table = build_table(files, HEADER_SIZE)
        stream.write_uint(COUNT_FORMAT, len(files))
        stream.write_uint(OFFSET_FORMAT, table.data_region_start)
    else:
        table = build_table(files)

    write_table(stream, table)
    for f in files:
        stream.append(f.data)
    return table


def _locate(entry, data_region_start, limit, index=None):
    start = data_region_start + entry.data_origin
    end = start + entry.data_size
    if end > limit:
        raise OutOfBoundsRead(f"Entry data ends at 0x{end:08X}, past the end of the archive (0x{limit:08X})",
                              index=index, name=entry.name, offset=start)
    return start


def unpack(input_stream, sink, options=None):
    """Hand every member to ``sink(name, data)`` in table order."""
    stream = _wrap(input_stream)
    table = read_archive_table(stream, options)
    limit = stream.size()

    for index, entry in enumerate(table.entries):
        stream.seek(_locate(entry, table.data_region_start, limit, index))
        sink(entry.name, stream.read_exact(entry.data_size))
    return table


def read_files(input_stream, options=None):
    files = []
    unpack(input_stream, lambda name, data: files.append(LogicalFile(name, data)), options)
    return files


def extract_one(entry, input_stream, destination, data_region_start, index=None):
    """Copy one member into ``destination`` (a path or a writable binary file).

    The destination is closed on every exit path.
    """
    stream = _wrap(input_stream)
    stream.seek(_locate(entry, data_region_start, stream.size(), index))

    try:
        out_file = destination if hasattr(destination, 'write') else open(destination, 'wb')
        with out_file:
            remaining = entry.data_size
            while remaining:
                try:
                    chunk = stream.read_exact(min(remaining, COPY_CHUNK_SIZE))
                except EOFError as e:
                    raise OutOfBoundsRead("Archive ended while copying entry data",
                                          index=index, name=entry.name,
                                          offset=stream.tell()) from e
                out_file.write(chunk)
                remaining -= len(chunk)
    except OSError as e:
        raise IoFailure(f"Cannot write {destination!r}: {e}", index=index, name=entry.name) from e
