"""提示词与开场白加载工具。

- BASE_SYSTEM_PROMPT: 固定的基础指令，ContextBuilder 会把人设文本拼在它后面。
- load_persona / load_greeting: 从文本文件读取人设与开场白；未指定路径时
  读取 prompts/zh 下的默认文件，文件不存在或读取失败时返回空字符串。
"""

import logging
from pathlib import Path
from typing import Optional

from pet_core.infrastructure.logging.logger import logger


PROMPTS_DIR = Path(__file__).resolve().parent

BASE_SYSTEM_PROMPT = (
    "你是一只住在用户桌面上的小宠物，用简短、亲切的中文和用户聊天。"
    "如果想让自己做一个动作，可以在回复末尾附带一段 JSON："
    '{"actions": [{"name": "click"}]}，'
    "可用动作有 click（被点击的反应）、awake（醒来）、sleep（睡觉）。"
    "不需要动作时不要输出 JSON。"
)


def _read_text(path: Path, kind: str) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return ""
    except (OSError, UnicodeDecodeError) as e:
        logger.log(logging.WARNING, f"Failed to read {kind} file", extra={"extra": {"path": str(path), "error": str(e)}})
        return ""


def load_persona(path: Optional[str] = None, locale: str = "zh") -> str:
    """读取人设文本，缺失时返回空字符串。"""

    fname = Path(path).expanduser() if path else PROMPTS_DIR / locale / "persona.md"
    return _read_text(fname, "persona")


def load_greeting(path: Optional[str] = None, locale: str = "zh") -> str:
    """读取开场白文本，缺失时返回空字符串。"""

    fname = Path(path).expanduser() if path else PROMPTS_DIR / locale / "greeting.md"
    return _read_text(fname, "greeting")
