import asyncio

import dotenv

from llm_chat_stream import ChatSession, ChatStream

dotenv.load_dotenv()


async def main() -> None:
    chat = ChatStream()
    session = ChatSession.empty()
    session.add("system", "Answer in one short paragraph.")

    try:
        result = await chat.asend_message(
            session,
            "Explain what server-sent events are",
            on_text=lambda text: print(f"\r{len(text)} chars received", end="", flush=True),
        )
    finally:
        await chat.aclose()

    print()
    if result.error is not None:
        print(result.error.user_message)
    else:
        print(result.text)


asyncio.run(main())
