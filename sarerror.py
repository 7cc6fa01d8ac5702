class SarError(RuntimeError):
    def __init__(self, message, index=None, name=None, offset=None):
        details = []
        if index is not None:
            details.append(f"entry #{index}")
        if name is not None:
            details.append(f"name={name!r}")
        if offset is not None:
            details.append(f"offset=0x{offset:08X}")
        if details:
            message = f"{message} ({', '.join(details)})"
        super().__init__(message)
        self.index = index
        self.name = name
        self.offset = offset


class MalformedEntry(SarError):
    pass


class TruncatedHeader(SarError):
    pass


class InvalidName(SarError):
    pass


class OutOfBoundsRead(SarError):
    pass


class PayloadTooLarge(SarError):
    pass


class IoFailure(SarError):
    pass
