"""
tesland/integrations/ai_gateway.py - Streaming chat completions through the hosted AI gateway.

The assistant always answers with a fixed system instruction in front of the conversation.
`stream_chat` returns the upstream response still open, so the caller can relay the
event stream byte for byte and close it when the client is done.
"""
import logging
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

import httpx

from tesland.config import settings

logger = logging.getLogger("tesland.assistant")

SYSTEM_PROMPT = """Te egy segítőkész Tesla szerviz asszisztens vagy. Magyarul válaszolsz a kérdésekre.

**Elérhető szolgáltatások:**
- Általános szerviz - Rendszeres karbantartás és ellenőrzés
- Fékrendszer - Fékbetét csere, féktárcsa felújítás
- Futómű - Lengéscsillapító, kerékcsapágy javítás
- Klíma szerviz - Klíma töltés, szűrő csere
- Akkumulátor - Akkumulátor diagnosztika és csere
- Karosszéria - Fényezés, horpadás javítás

**Tesla modellek amiket szervizelünk:**
- Model S
- Model 3
- Model X
- Model Y
- Cybertruck

**Nyitvatartás:**
- Hétfő-Péntek: 8:00 - 18:00
- Szombat: 9:00 - 14:00
- Vasárnap: Zárva

**Helyszín:** Budapest

**Fontos tudnivalók:**
- Időpontfoglalás online vagy telefonon
- Minden munkára garanciát vállalunk
- Eredeti Tesla alkatrészeket használunk
- Kölcsönautó igényelhető nagyobb javításokhoz

Légy kedves, segítőkész és informatív. Ha a felhasználó időpontot szeretne foglalni, irányítsd az online foglalási rendszerhez. Rövid, tömör válaszokat adj, de legyél barátságos."""


@dataclass
class ChatStream:
    response: httpx.Response
    client: httpx.AsyncClient

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def ok(self) -> bool:
        return self.response.is_success

    def iter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_raw()

    async def read_text(self) -> str:
        await self.response.aread()
        return self.response.text

    async def aclose(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


class AIGatewayClient:
    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None,
                 model: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.ai_gateway_api_key
        self.url = url or settings.ai_gateway_url
        self.model = model or settings.ai_model
        self.transport = transport

    async def stream_chat(self, messages: List[dict]) -> ChatStream:
        if not self.api_key:
            raise RuntimeError("AI gateway API key is not configured")
        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": SYSTEM_PROMPT}, *messages],
            "stream": True,
        }
        # No read timeout: the stream stays open as long as the model keeps talking
        client = httpx.AsyncClient(transport=self.transport, timeout=httpx.Timeout(settings.http_timeout, read=None))
        request = client.build_request(
            "POST", self.url, json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        try:
            response = await client.send(request, stream=True)
        except Exception:
            await client.aclose()
            raise
        return ChatStream(response=response, client=client)
