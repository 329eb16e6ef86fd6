"""Stream stages turning model output bytes into invocations."""

from fencecall.pipeline.accumulator import ContentAccumulator
from fencecall.pipeline.deltas import DeltaMessage, decode_deltas
from fencecall.pipeline.fanout import StreamBroadcaster, tee
from fencecall.pipeline.fences import CodeFenceScanner, ParsedCodeBlock, scan_code_blocks
from fencecall.pipeline.invocations import (
    ActionInvocation,
    ParsedInvocationTag,
    ParsedTaggedCodeBlock,
    decode_tagged_block,
    parse_invocation_tag,
    parse_parameters,
)
from fencecall.pipeline.json_fields import JsonFieldStreamer
from fencecall.pipeline.sse import SSEFrameDecoder, decode_sse_frames

__all__ = [
    "ActionInvocation",
    "CodeFenceScanner",
    "ContentAccumulator",
    "DeltaMessage",
    "JsonFieldStreamer",
    "ParsedCodeBlock",
    "ParsedInvocationTag",
    "ParsedTaggedCodeBlock",
    "SSEFrameDecoder",
    "StreamBroadcaster",
    "decode_deltas",
    "decode_sse_frames",
    "decode_tagged_block",
    "parse_invocation_tag",
    "parse_parameters",
    "scan_code_blocks",
]
