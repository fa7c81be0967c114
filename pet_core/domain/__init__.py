"""领域层模型与协议。

包含：
- models: ChatMessage / ChatRequest / ChatResult 等请求与结果模型。
- conversation: Turn 与 ConversationStore 协议。
- events: DeltaEvent 与 CompletionOutcome。
- exceptions: 业务异常类型定义。
"""
