import dotenv
import httpx

from llm_chat_stream._config import ClientSettings
from llm_chat_stream._delta import extract_delta, is_done_sentinel, parse_payload
from llm_chat_stream._errors import MalformedPayloadError
from llm_chat_stream._sse import StreamDemuxer

dotenv.load_dotenv()

settings = ClientSettings.from_env_or_value()
url = f"{settings.base_url}{settings.chat_path}"
payload = {"messages": [{"role": "user", "content": "Say: hello"}]}

demuxer = StreamDemuxer()
with httpx.stream("POST", url, json=payload, headers={"Accept": "text/event-stream"}, timeout=settings.timeout_s) as r:
    print("status=", r.status_code, "content-type=", r.headers.get("content-type"))
    for i, chunk in enumerate(r.iter_text()):
        print("i=", i, "chunk=", repr(chunk))
        for data in demuxer.push(chunk):
            print("  payload=", repr(data))
            if not is_done_sentinel(data):
                try:
                    print("  delta=", repr(extract_delta(parse_payload(data))))
                except MalformedPayloadError as e:
                    print("  unparseable:", e)
    for data in demuxer.flush():
        print("  trailing payload=", repr(data))
