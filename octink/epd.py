# octink/epd.py: Waveshare 5.65" ACeP 7-colour (600x448) over SPI on a Raspberry Pi
# Sequence: RESET → PANEL/POWER/BOOST/PLL/VCOM/RES → (0x10 data) → POWER_ON → REFRESH → POWER_OFF
# Wiring: DIN→MOSI, CLK→SCLK, CS→CE0 (GPIO8), DC→GPIO25, RST→GPIO17, BUSY→GPIO24

import logging
import time

from . import settings
from .errors import TransportError
from .transport import buffer_size, solid_buffer

log = logging.getLogger(__name__)

# Geometry (native landscape)
W, H = settings.WIDTH, settings.HEIGHT
BUF_BYTES = buffer_size(W, H)
SPI_MAX_CHUNK = 4096
SPI_HZ = 4000000

# Commands
PANEL_SETTING             = 0x00
POWER_SETTING             = 0x01
POWER_OFF                 = 0x02
POWER_OFF_SEQUENCE        = 0x03
POWER_ON                  = 0x04
BOOSTER_SOFT_START        = 0x06
DEEP_SLEEP                = 0x07
DATA_START_TRANSMISSION_1 = 0x10
DISPLAY_REFRESH           = 0x12
PLL_CONTROL               = 0x30
TEMPERATURE_CALIBRATION   = 0x41
VCOM_DATA_INTERVAL        = 0x50
TCON_SETTING              = 0x60
RESOLUTION_SETTING        = 0x61
POWER_SAVING              = 0xE3

# 600 = 0x0258, 448 = 0x01C0
RESOLUTION = [(W >> 8) & 0xFF, W & 0xFF, (H >> 8) & 0xFF, H & 0xFF]

# This panel idles BUSY=HIGH; LOW means "busy"
BUSY_TIMEOUT_S = 45.0


def _hw_pins():
    """Open spidev + Blinka pins. Imported here so non-Pi machines can import octink."""
    import spidev, board, digitalio

    def out(pin, value):
        d = digitalio.DigitalInOut(pin); d.direction = digitalio.Direction.OUTPUT; d.value = value
        return d

    dc   = out(board.D25, 1)
    rst  = out(board.D17, 1)
    busy = digitalio.DigitalInOut(board.D24); busy.direction = digitalio.Direction.INPUT
    spi  = spidev.SpiDev(); spi.open(0, 0); spi.max_speed_hz = SPI_HZ; spi.mode = 0
    return spi, dc, rst, busy


class EPD565F:
    """
    PanelTransport for the 5.65" ACeP panel.

    ``spi`` and ``pins`` (dc, rst, busy objects with a ``value`` attribute)
    can be passed in; otherwise the real bus is opened. After ``sleep()``
    the next command re-runs the init sequence.
    """

    width = W
    height = H

    def __init__(self, spi=None, pins=None, busy_timeout: float = BUSY_TIMEOUT_S, delay=time.sleep):
        try:
            if spi is None or pins is None:
                spi, self.dc, self.rst, self.busy = _hw_pins()
            else:
                self.dc, self.rst, self.busy = pins
        except ImportError as e:
            raise TransportError(f"panel libraries missing (pip install octink[hw]): {e}") from e
        except (OSError, RuntimeError) as e:
            raise TransportError(f"cannot open panel bus: {e}") from e
        self.spi = spi
        self.busy_timeout = busy_timeout
        self._delay = delay
        self.background = 0x1  # White
        self._asleep = True
        self.init()

    # ---------- low level ----------
    def _cmd(self, c: int):
        self.dc.value = 0
        self.spi.xfer2([c])
        self.dc.value = 1

    def _data(self, b):
        self.dc.value = 1
        if isinstance(b, int):
            b = [b]
        for i in range(0, len(b), SPI_MAX_CHUNK):
            self.spi.xfer2(list(b[i:i+SPI_MAX_CHUNK]))

    def _wait(self, tag: str, idle_high: bool = True) -> bool:
        t0 = time.monotonic()
        while bool(self.busy.value) != idle_high:
            if time.monotonic() - t0 > self.busy_timeout:
                log.warning("[epd] timeout %s", tag)
                return False
            self._delay(0.02)
        return True

    def _reset(self):
        self.rst.value = 1; self._delay(0.6)
        self.rst.value = 0; self._delay(0.002)
        self.rst.value = 1; self._delay(0.2)

    def _io(self, what: str, fn, *args):
        try:
            return fn(*args)
        except OSError as e:
            raise TransportError(f"[epd] {what} failed: {e}") from e

    # ---------- sequences ----------
    def _init(self):
        log.info("[epd] RESET → PANEL → POWER → BOOST → PLL → RES")
        self._reset()
        self._wait("RESET")
        self._cmd(PANEL_SETTING);           self._data([0xEF, 0x08])
        self._cmd(POWER_SETTING);           self._data([0x37, 0x00, 0x23, 0x23])
        self._cmd(POWER_OFF_SEQUENCE);      self._data([0x00])
        self._cmd(BOOSTER_SOFT_START);      self._data([0xC7, 0xC7, 0x1D])
        self._cmd(PLL_CONTROL);             self._data([0x3C])
        self._cmd(TEMPERATURE_CALIBRATION); self._data([0x00])
        self._cmd(VCOM_DATA_INTERVAL);      self._data([0x37])
        self._cmd(TCON_SETTING);            self._data([0x22])
        self._cmd(RESOLUTION_SETTING);      self._data(RESOLUTION)
        self._cmd(POWER_SAVING);            self._data([0xAA])
        self._delay(0.1)
        self._cmd(VCOM_DATA_INTERVAL);      self._data([0x37])
        self._asleep = False

    def _update(self, buf: bytes):
        if len(buf) != BUF_BYTES:
            raise TransportError(f"[epd] buffer is {len(buf)} bytes, panel wants {BUF_BYTES}")
        if self._asleep:
            self._init()
        self._cmd(RESOLUTION_SETTING);        self._data(RESOLUTION)
        self._cmd(DATA_START_TRANSMISSION_1); self._data(buf)

    def _display(self):
        if self._asleep:
            self._init()
        self._cmd(POWER_ON);        self._wait("POWER_ON")
        self._cmd(DISPLAY_REFRESH); self._wait("REFRESH")
        self._cmd(POWER_OFF);       self._wait("POWER_OFF", idle_high=False)
        self._delay(0.5)

    def _sleep(self):
        self._cmd(DEEP_SLEEP); self._data(0xA5)
        self._delay(0.1)
        self.rst.value = 0
        self._asleep = True

    # ---------- PanelTransport ----------
    def init(self):
        self._io("init", self._init)

    def set_background(self, code: int):
        self.background = code & 0x0F

    def update(self, buffer: bytes):
        self._io("update", self._update, buffer)

    def display(self):
        self._io("display", self._display)

    def update_and_display(self, buffer: bytes):
        self.update(buffer)
        self.display()

    def clear(self):
        log.info("[epd] clear to 0x%X", self.background)
        self.update_and_display(solid_buffer(self.background, W, H))

    def sleep(self):
        if self._asleep:
            return
        log.info("[epd] deep sleep")
        self._io("sleep", self._sleep)

    def close(self):
        self.sleep()
        try:
            self.spi.close()
        except OSError as e:
            log.warning("[epd] spi close: %s", e)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
