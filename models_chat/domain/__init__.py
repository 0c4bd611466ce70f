"""领域层模型。

包含：
- models: ChatMessage / ChatRequest / CompletionChunk 等数据结构。
- conversation: 内存中的多轮会话历史。
- parameters: 生成参数集合及其校验。
- exceptions: 业务异常类型定义。
"""
