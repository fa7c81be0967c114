"""Minimal demonstration of the streaming chat relay."""

from pet_core.api.service import get_greeting, send_chat, set_action_listener


def _print_event(payload):
    if "delta" in payload:
        print(payload["delta"], end="", flush=True)
    elif "error" in payload:
        print(f"\n[错误] {payload['error']}")
    elif payload.get("done"):
        print()


if __name__ == "__main__":
    set_action_listener(lambda payload: print(f"[动作] {payload['actions']}"))
    print("Pet:", get_greeting()["greeting"])
    question = "摸摸头～你今天开心吗？"
    print("User:", question)
    print("Pet: ", end="")
    send_chat(question, _print_event)
