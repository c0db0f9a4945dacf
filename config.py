# config.py
import os

# ======= Search cadence / caps =======
YIELD_EVERY      = int(os.getenv("MS_YIELD_EVERY", "500"))
TOP_N            = int(os.getenv("MS_TOP_N", "10"))
DISABLE_PRUNING  = int(os.getenv("MS_DISABLE_PRUNING", "0")) != 0

# ======= Channel catalogue =======
# Families generated when a request carries no allow-list.  The built-in
# catalogue also holds CPRO50 rows; list it here (or in the request) to use it.
CHANNEL_FAMILIES = tuple(
    f.strip() for f in os.getenv("MS_CHANNEL_FAMILIES", "CPRO38").split(",") if f.strip()
)
CHANNEL_CSV      = os.getenv("MS_CHANNEL_CSV", "")

# ======= Engineering limits (mm / kN / N/mm²) =======
MIN_RISE_TO_BOLTS = float(os.getenv("MS_MIN_RISE_TO_BOLTS", "95"))
MAX_ANGLE_HEIGHT  = float(os.getenv("MS_MAX_ANGLE_HEIGHT", "400"))
CONCRETE_GRADE    = float(os.getenv("MS_CONCRETE_GRADE", "30"))
BASE_PLATE_WIDTH  = float(os.getenv("MS_BASE_PLATE_WIDTH", "56"))
LOAD_FACTOR       = float(os.getenv("MS_LOAD_FACTOR", "1.35"))
# bearing strength of the steel flange under a steel-frame base plate
STEEL_BEARING_STRENGTH = float(os.getenv("MS_STEEL_BEARING_STRENGTH", "235"))

# ======= Run layout (CP-SAT) =======
LAYOUT_SECONDS = float(os.getenv("MS_LAYOUT_SECONDS", "5"))
WORKERS        = int(os.getenv("MS_WORKERS", "1"))
RANDOM_SEED    = int(os.getenv("MS_RANDOM_SEED", "0"))

# ======= Output names =======
RESULT_JSON = os.getenv("MS_RESULT_JSON", "outputs/result.json")
SUMMARY_TXT = os.getenv("MS_SUMMARY_TXT", "outputs/summary.txt")

class CFG:
    YIELD_EVERY     = YIELD_EVERY
    TOP_N           = TOP_N
    DISABLE_PRUNING = DISABLE_PRUNING

    CHANNEL_FAMILIES = CHANNEL_FAMILIES
    CHANNEL_CSV      = CHANNEL_CSV

    MIN_RISE_TO_BOLTS = MIN_RISE_TO_BOLTS
    MAX_ANGLE_HEIGHT  = MAX_ANGLE_HEIGHT
    CONCRETE_GRADE    = CONCRETE_GRADE
    BASE_PLATE_WIDTH  = BASE_PLATE_WIDTH
    LOAD_FACTOR       = LOAD_FACTOR
    STEEL_BEARING_STRENGTH = STEEL_BEARING_STRENGTH

    LAYOUT_SECONDS = LAYOUT_SECONDS
    WORKERS        = WORKERS
    RANDOM_SEED    = RANDOM_SEED

    RESULT_JSON = RESULT_JSON
    SUMMARY_TXT = SUMMARY_TXT

__all__ = ["CFG"]
