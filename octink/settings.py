# Waveshare 5.65" ACeP 7-colour panel (epd5in65f), native landscape
WIDTH  = 600
HEIGHT = 448

# The panel is mounted portrait: logical canvas is HEIGHT x WIDTH
CANVAS_SIZE = (HEIGHT, WIDTH)   # PIL (w, h)

# Refresh cadence
WIPE_EVERY = 10                 # draws allowed between full wipes

# Generation cycle
FRAME_COUNT   = 10
FRAME_STRIDE  = 60              # emulator frames between samples (1s at 60Hz)
CYCLE_DELAY_S = 120.0
MAX_TRANSFORMS = 9
RENDER_ATTEMPTS = 10            # sources tried by one-shot render before giving up

# QR overlay
QR_SCALE = 2

# Output
OUTPUT_DIR  = "gameboy"
LATEST_NAME = "latest.png"
HTTP_PORT   = 7777
