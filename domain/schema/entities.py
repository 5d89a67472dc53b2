"""
Schema 领域实体 - 从 proto 文本中提取的结构模型
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import List


class CallShape(str, Enum):
    """RPC 调用形态"""

    UNARY = "unary"
    SERVER_STREAMING = "server-streaming"
    CLIENT_STREAMING = "client-streaming"
    BIDIRECTIONAL = "bidirectional-streaming"

    @classmethod
    def from_stream_flags(cls, input_streamed: bool, output_streamed: bool) -> "CallShape":
        """业务规则：根据两侧的 stream 修饰符确定调用形态"""
        if input_streamed and output_streamed:
            return cls.BIDIRECTIONAL
        if output_streamed:
            return cls.SERVER_STREAMING
        if input_streamed:
            return cls.CLIENT_STREAMING
        return cls.UNARY

    @property
    def is_streaming(self) -> bool:
        return self is not CallShape.UNARY


@dataclass
class MethodDescriptor:
    """RPC 方法描述（输入/输出类型为源码中的裸类型名）"""

    name: str
    call_shape: CallShape
    input_type: str
    output_type: str


@dataclass
class ServiceDescriptor:
    """服务描述（名称按 package 限定）"""

    name: str
    methods: List[MethodDescriptor] = field(default_factory=list)


@dataclass(frozen=True)
class FieldSchema:
    """消息字段描述

    The modeled dialect has no presence semantics, so ``required`` is
    always False.
    """

    name: str
    declared_type: str
    repeated: bool = False
    required: bool = False
    tag: int = 0


@dataclass(frozen=True)
class MessageSchema:
    """消息描述，每次调用时从原始文本重新推导，不做缓存"""

    name: str
    fields: tuple[FieldSchema, ...] = ()

    @property
    def field_names(self) -> set[str]:
        return {f.name for f in self.fields}

    def duplicate_tags(self) -> list[int]:
        counts = Counter(f.tag for f in self.fields)
        return sorted(tag for tag, n in counts.items() if n > 1)
