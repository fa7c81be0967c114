"""从最终回答中提取宠物动作。

模型可能在回答里夹带一段 {"actions": [...]}，前后还有普通文字。
这里从每个 "{" 开始做括号深度扫描（跳过字符串内的括号与转义），
取第一个能完整匹配、包含 "actions" 键、且 actions 为数组的 JSON 对象。
外层对象没有 actions 时会继续尝试其内部的 "{"，因此嵌套结构不会被截断。

提取失败与“没有动作”不做区分，一律返回 None，从不抛异常。
"""

import json
from typing import Any, Dict, List, Optional


ACTIONS_KEY = '"actions"'


def _matching_brace(text: str, start: int) -> int:
    """返回与 text[start] 处 "{" 匹配的 "}" 下标，不平衡时返回 -1。"""

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def extract_actions(text: Optional[str]) -> Optional[List[Dict[str, Any]]]:
    if not text or ACTIONS_KEY not in text:
        return None
    start = text.find("{")
    while start != -1:
        end = _matching_brace(text, start)
        if end != -1:
            span = text[start:end + 1]
            if ACTIONS_KEY in span:
                try:
                    data = json.loads(span)
                except json.JSONDecodeError:
                    data = None
                if isinstance(data, dict) and isinstance(data.get("actions"), list):
                    return data["actions"]
        start = text.find("{", start + 1)
    return None
