from dataclasses import dataclass
from enum import Enum


class BuilderExceptionCode(Enum):
    AmbiguousResolution = -32700
    MalformedRevertPayload = -32701
    Transport = -32702
    Stage = -32703
    Encoding = -32704


@dataclass
class AmbiguousResolutionError(Exception):
    message: str
    exception_code: BuilderExceptionCode = \
        BuilderExceptionCode.AmbiguousResolution

    def __str__(self):
        return self.message


@dataclass
class MalformedRevertPayload(Exception):
    message: str
    revert_data: str | None = None
    exception_code: BuilderExceptionCode = \
        BuilderExceptionCode.MalformedRevertPayload

    def __str__(self):
        return self.message


@dataclass
class TransportError(Exception):
    message: str
    method: str | None = None
    exception_code: BuilderExceptionCode = BuilderExceptionCode.Transport

    def __str__(self):
        if self.method is None:
            return self.message
        return f"{self.method}: {self.message}"


@dataclass
class StageError(Exception):
    stage_name: str
    message: str
    exception_code: BuilderExceptionCode = BuilderExceptionCode.Stage

    def __str__(self):
        return f"middleware stage '{self.stage_name}' failed: {self.message}"


@dataclass
class EncodingError(Exception):
    message: str
    exception_code: BuilderExceptionCode = BuilderExceptionCode.Encoding

    def __str__(self):
        return self.message
