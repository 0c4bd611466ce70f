"""生成参数集合。

CLI 启动参数（--max-tokens 等）与会话内的 `/set <name> <value>` 命令
共用同一条校验路径 set_by_name，保证两处语义一致。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple, Union

from .exceptions import ValidationError
from .models import ChatRequest

NOT_SET = "<not set>"

# /parameters 展示顺序
PARAMETER_NAMES: Tuple[str, ...] = ("max-tokens", "temperature", "top-p")

Number = Union[int, float]


@dataclass(frozen=True)
class _ParameterSpec:
    attr: str
    parse: Callable[[str], Number]
    kind: str


_SPECS: Dict[str, _ParameterSpec] = {
    "max-tokens": _ParameterSpec(attr="max_tokens", parse=int, kind="integer"),
    "temperature": _ParameterSpec(attr="temperature", parse=float, kind="number"),
    "top-p": _ParameterSpec(attr="top_p", parse=float, kind="number"),
}


@dataclass
class ParameterSet:
    """可选的生成控制参数，None 表示使用服务端默认值。"""

    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None

    def set_by_name(self, name: str, value: str) -> None:
        entry = _SPECS.get(name)
        if entry is None:
            raise ValidationError(
                code="UNKNOWN_PARAMETER",
                message=(
                    f"unknown parameter '{name}'. "
                    f"Supported parameters: {', '.join(PARAMETER_NAMES)}"
                ),
                field=name,
            )
        try:
            parsed = entry.parse(value.strip())
        except (TypeError, ValueError):
            raise ValidationError(
                code="MALFORMED_VALUE",
                message=f"invalid value for {name}: {value!r} is not a valid {entry.kind}",
                field=name,
            ) from None
        if isinstance(parsed, float) and not math.isfinite(parsed):
            raise ValidationError(
                code="MALFORMED_VALUE",
                message=f"invalid value for {name}: {value!r} is not a finite {entry.kind}",
                field=name,
            )
        setattr(self, entry.attr, parsed)

    def format(self, name: str) -> str:
        entry = _SPECS.get(name)
        if entry is None:
            return NOT_SET
        value = getattr(self, entry.attr)
        if value is None:
            return NOT_SET
        if entry.kind == "integer":
            return str(value)
        return f"{value:f}"

    def populate_from_options(self, options: Mapping[str, Optional[str]]) -> None:
        """从 CLI 选项（键为参数名，值为原始字符串）填充，空值跳过。"""

        for name, value in options.items():
            if value is None or value == "":
                continue
            self.set_by_name(name, value)

    def apply_to(self, req: ChatRequest) -> None:
        """只覆盖已设置的字段，未设置的保持请求原值。"""

        if self.max_tokens is not None:
            req.max_tokens = self.max_tokens
        if self.temperature is not None:
            req.temperature = self.temperature
        if self.top_p is not None:
            req.top_p = self.top_p
