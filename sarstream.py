import os
import struct

from sarerror import IoFailure


class BinaryStream:
    def __init__(self, stream):
        self.stream = stream

    def _io(self, func, *args):
        try:
            return func(*args)
        except OSError as e:
            raise IoFailure(f"I/O error: {e}") from e

    def read_byte(self):
        byte = self._io(self.stream.read, 1)
        if not byte:
            return None
        return byte

    def read_exact(self, size):
        data = self._io(self.stream.read, size)
        if len(data) != size:
            raise EOFError(f"End of stream: wanted {size} bytes, got {len(data)}")
        return data

    def read_uint(self, fmt):
        return struct.unpack(fmt, self.read_exact(struct.calcsize(fmt)))[0]

    def seek(self, offset):
        self._io(self.stream.seek, offset, os.SEEK_SET)

    def tell(self):
        return self._io(self.stream.tell)

    def size(self):
        # Cursor is restored after measuring
        position = self.tell()
        end = self._io(self.stream.seek, 0, os.SEEK_END)
        self.seek(position)
        return end

    def append(self, data):
        self._io(self.stream.write, data)

    def write_uint(self, fmt, value):
        self.append(struct.pack(fmt, value))
