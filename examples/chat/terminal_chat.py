import sys

import dotenv

from llm_chat_stream import ChatSession, ChatStream

dotenv.load_dotenv()

chat = ChatStream()  # LLM_CHAT_BASE_URL, LLM_CHAT_PATH, ... desde .env
session = ChatSession()
print(session.history[0].content)


def make_printer():
    shown = 0

    def on_text(text: str) -> None:
        # El sink recibe el texto completo; imprimir solo lo nuevo.
        nonlocal shown
        print(text[shown:], end="", flush=True)
        shown = len(text)

    return on_text


try:
    while True:
        try:
            message = input("\n> ")
        except EOFError:
            break
        result = chat.send_message(
            session,
            message,
            on_text=make_printer(),
            on_error=lambda msg: print(msg, file=sys.stderr),
        )
        if result.skipped:
            continue
        print()
finally:
    chat.close()
