"""Minimal demonstration of the Azure OpenAI relay."""

import asyncio

from chat_relay import ConversationTurnRequest, create_client

if __name__ == "__main__":
    client = create_client()
    question = "请用一句话介绍你自己"
    req = ConversationTurnRequest(
        message=question,
        system_message="你是一个有用的AI助手。",
        delivery=lambda event: print("Delivery:", event),
    )
    asyncio.run(client.submit(req))
    print("Model:", client.current_model())
