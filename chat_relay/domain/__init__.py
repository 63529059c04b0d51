"""领域层模型与异常。

包含：
- models: 统一的 ConversationTurnRequest / WireRequest / InternalChatMessage 模型。
- exceptions: 业务异常类型定义。
"""
