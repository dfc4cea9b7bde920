"""iDotMatrix BLE LED 디스플레이 모듈 — 캔버스에 텍스트를 그리고 프레임 단위로 전송한다.

iDotMatrix (IDM-) 디바이스 전용 이미지 업로드 프로토콜을 사용한다.
참조: https://github.com/derkalle4/python3-idotmatrix-library
"""

import asyncio
import logging
import struct
import time
from io import BytesIO

from bleak import BleakClient, BleakScanner
from bleak.exc import BleakError
from PIL import Image

from ports import COLOR_BACKGROUND
from renderer.canvas import Canvas
from renderer.layout import HEIGHT, WIDTH

logger = logging.getLogger(__name__)

WRITE_UUID = "0000fa02-0000-1000-8000-00805f9b34fb"
NOTIFY_UUID = "0000fa03-0000-1000-8000-00805f9b34fb"

IMAGE_CHUNK_SIZE = 4096  # iDotMatrix 이미지 청크 크기
CHUNK_ACK_TIMEOUT = 2.0
FINAL_ACK_TIMEOUT = 1.0


async def find_display_address(name_prefix: str = "IDM-", timeout: float = 10.0) -> str | None:
    """BLE 스캔으로 이름 접두사가 일치하는 첫 디바이스 주소를 반환한다.

    LED_BLE_ 접두사도 함께 검색한다.
    """
    logger.info("BLE 디바이스 스캔 중... (timeout=%ss)", timeout)
    devices = await BleakScanner.discover(timeout=timeout)

    prefixes = (name_prefix, "LED_BLE_")
    for d in devices:
        if d.name and d.name.startswith(prefixes):
            logger.info("발견: %s (%s)", d.name, d.address)
            return d.address

    logger.warning("일치하는 디바이스를 찾지 못했습니다.")
    return None


def build_image_payloads(png_bytes: bytes) -> list[bytearray]:
    """PNG 바이트를 iDotMatrix 업로드용 청크 리스트로 나눈다.

    청크 헤더: [청크+헤더 길이(2B LE), 0x00, 0x00, 첫 청크 0x00/후속 0x02, PNG 전체 크기(4B LE)]
    """
    total_size = len(png_bytes)
    payloads = []
    for offset in range(0, total_size, IMAGE_CHUNK_SIZE):
        chunk = png_bytes[offset:offset + IMAGE_CHUNK_SIZE]
        header = struct.pack("<h", len(chunk) + 9)
        header += bytes([0x00, 0x00, 0x00 if offset == 0 else 0x02])
        header += struct.pack("<i", total_size)
        payloads.append(bytearray(header) + bytearray(chunk))
    return payloads


class BleLedDisplay:
    """64x64 iDotMatrix 패널을 텍스트 디스플레이로 사용한다.

    draw_text/clear_screen은 메모리의 캔버스에만 그리고,
    flush()가 바뀐 프레임을 PNG로 패널에 전송한다.
    """

    def __init__(self, address: str, reconnect_interval: float = 10):
        self._address = address
        self._reconnect_interval = reconnect_interval
        self._client: BleakClient | None = None
        self._connected = False
        self._last_connect_attempt: float | None = None
        self._mtu_size = 20  # 기본값, 연결 시 갱신
        self._diy_mode_active = False
        self._chunk_ack = asyncio.Event()
        self._final_ack = asyncio.Event()

        self._canvas = Canvas()
        self._dirty = False
        # 전송은 한 번에 하나씩 (청크가 섞이면 패널이 프레임을 버린다)
        self._flush_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._connected

    # ── DisplayPort ──

    def draw_text(self, row: int, col: int, text: str, size: int, color: tuple) -> None:
        self._canvas.draw_text(row, col, text, size, color)
        self._dirty = True

    def clear_screen(self, color: tuple = COLOR_BACKGROUND) -> None:
        self._canvas.clear(color)
        self._dirty = True

    async def flush(self) -> bool:
        """캔버스가 바뀌었으면 패널로 전송한다. 실패하면 다음 flush에서 다시 보낸다.

        전송 중에 다시 그려진 내용은 다음 flush에서 보낸다.
        """
        async with self._flush_lock:
            if not self._dirty:
                return True
            self._dirty = False
            ok = await self.send_image(self._canvas.to_rgb())
            if not ok:
                self._dirty = True
            return ok

    # ── 연결 관리 ──

    def _on_disconnect(self, client):
        logger.warning("BLE 연결 끊김: %s", self._address)
        self._connected = False
        self._diy_mode_active = False

    def _on_notify(self, sender, data: bytes):
        """FA03 notify 콜백 — ACK 처리. 5바이트, data[0]==0x05, data[4]가 상태 코드."""
        if len(data) < 5 or data[0] != 0x05:
            return
        code = data[4]
        if code in (0, 1, 2, 3):
            self._chunk_ack.set()
        if code == 3:
            self._final_ack.set()

    async def connect(self) -> None:
        """디바이스에 연결하고 notify를 구독한다."""
        logger.info("BLE 연결 시도: %s", self._address)
        self._last_connect_attempt = time.monotonic()
        self._client = BleakClient(self._address, disconnected_callback=self._on_disconnect)
        await self._client.connect()

        char = self._client.services.get_characteristic(WRITE_UUID)
        if char is not None and char.max_write_without_response_size > 20:
            self._mtu_size = char.max_write_without_response_size
        else:
            self._mtu_size = max(20, self._client.mtu_size - 3)

        await self._client.start_notify(NOTIFY_UUID, self._on_notify)
        self._connected = True
        logger.info("BLE 연결 성공: %s (MTU write size: %d)", self._address, self._mtu_size)

    async def disconnect(self) -> None:
        if self._client and self._connected:
            try:
                await self._client.stop_notify(NOTIFY_UUID)
            except BleakError as e:
                logger.debug("notify 해제 실패: %s", e)
            await self._client.disconnect()
            self._connected = False
            logger.info("BLE 연결 해제: %s", self._address)

    async def ensure_connected(self) -> bool:
        """연결이 끊겼으면 재연결한다. 재연결 시도는 reconnect_interval마다 한 번."""
        if self._connected and self._client and self._client.is_connected:
            return True
        if (self._last_connect_attempt is not None
                and time.monotonic() - self._last_connect_attempt < self._reconnect_interval):
            return False
        try:
            await self.connect()
            return True
        except (BleakError, OSError, asyncio.TimeoutError) as e:
            logger.error("재연결 실패: %s", e)
            self._connected = False
            return False

    # ── 이미지 전송 ──

    async def _write_payloads(self, payloads: list[bytearray]) -> None:
        """청크를 MTU 단위로 쪼개 write-without-response로 보낸다."""
        for idx, payload in enumerate(payloads):
            self._chunk_ack.clear()
            for pos in range(0, len(payload), self._mtu_size):
                await self._client.write_gatt_char(
                    WRITE_UUID, bytes(payload[pos:pos + self._mtu_size]), response=False,
                )

            # 마지막이 아닌 청크는 ACK를 기다린다 (없으면 잠시 쉬고 계속)
            if idx < len(payloads) - 1:
                try:
                    await asyncio.wait_for(self._chunk_ack.wait(), timeout=CHUNK_ACK_TIMEOUT)
                except asyncio.TimeoutError:
                    logger.debug("청크 %d/%d ACK 타임아웃", idx + 1, len(payloads))
                    await asyncio.sleep(0.3)

    async def send_image(self, image: Image.Image) -> bool:
        """Pillow 이미지를 패널에 전송한다. 최초 1회 DIY 모드를 켠다."""
        if not await self.ensure_connected():
            return False

        try:
            if not self._diy_mode_active:
                await self._client.write_gatt_char(WRITE_UUID, bytes([5, 0, 4, 1, 1]), response=True)
                await asyncio.sleep(0.3)
                self._diy_mode_active = True

            frame = image.convert("RGB").resize((WIDTH, HEIGHT), Image.Resampling.NEAREST)
            buf = BytesIO()
            frame.save(buf, format="PNG")
            payloads = build_image_payloads(buf.getvalue())
            logger.debug("이미지 전송: %d 바이트, %d 청크", buf.tell(), len(payloads))

            self._final_ack.clear()
            await self._write_payloads(payloads)

            # 패널이 프레임을 처리할 때까지 대기 (큐 밀림 방지)
            try:
                await asyncio.wait_for(self._final_ack.wait(), timeout=FINAL_ACK_TIMEOUT)
            except asyncio.TimeoutError:
                pass
            return True
        except (BleakError, OSError) as e:
            logger.error("이미지 전송 실패: %s", e)
            self._connected = False
            return False

    async def _send_command(self, cmd: bytes) -> bool:
        if not await self.ensure_connected():
            return False
        try:
            await self._client.write_gatt_char(WRITE_UUID, cmd, response=True)
            return True
        except (BleakError, OSError) as e:
            logger.error("명령 전송 실패: %s", e)
            return False

    async def set_brightness(self, level: int) -> bool:
        """밝기를 설정한다 (0-100)."""
        level = max(0, min(100, level))
        return await self._send_command(bytes([5, 0, 4, 0x80, level]))

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
