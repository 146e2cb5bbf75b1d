# config.py - Market Mayhem configuration
# Every value can be overridden from the environment or a .env file.
import os
from dotenv import load_dotenv

load_dotenv()

# -------------------- Session --------------------
TOTAL_ROUNDS = int(os.getenv("TOTAL_ROUNDS", "5"))
DEFAULT_DIFFICULTY = os.getenv("DEFAULT_DIFFICULTY", "normal")

# -------------------- Clocks (seconds) --------------------
TIMER_TICK_SECONDS = float(os.getenv("TIMER_TICK_SECONDS", "1.0"))
MARKET_TICK_SECONDS = float(os.getenv("MARKET_TICK_SECONDS", "10.0"))
NEWS_IMPACT_DELAY = float(os.getenv("NEWS_IMPACT_DELAY", "4.0"))   # players get time to react
OPPORTUNITY_LIFETIME = float(os.getenv("OPPORTUNITY_LIFETIME", "30.0"))

# -------------------- Price engine --------------------
VOL_JITTER = 0.20            # +-20% on effective volatility
TREND_DRIFT = 0.02           # drift per unit of trend strength
NOISE_RANGE = 1.25           # noise = uniform(-1.25, 1.25) * volatility
SPIKE_CHANCE = float(os.getenv("SPIKE_CHANCE", "0.05"))
SPIKE_RANGE = (2.0, 4.0)
TREND_CHANGE_CHANCE = float(os.getenv("TREND_CHANGE_CHANCE", "0.15"))
NEWS_FOLLOW_CHANCE = 0.60    # trend follows news sign this often on a re-roll
NEWS_STRENGTH_SCALE = 20     # |impact| * 20 -> trend strength

# -------------------- News / opportunities --------------------
NEWS_CHANCE_PER_TICK = float(os.getenv("NEWS_CHANCE_PER_TICK", "0.15"))
OPPORTUNITY_CHANCE = float(os.getenv("OPPORTUNITY_CHANCE", "0.10"))
SHORT_SIGNAL_RATIO = 1.30    # short opportunities want price >= 130% of initial

# -------------------- Ledger --------------------
MARGIN_REQUIREMENT = 0.5
SHORT_LEVERAGE = 2
FULL_POSITION_EPSILON = 1e-9

# -------------------- Alerts --------------------
ALERT_MOVE_PCT = float(os.getenv("ALERT_MOVE_PCT", "8.0"))
ALERT_STRESS_LEVEL = float(os.getenv("ALERT_STRESS_LEVEL", "0.5"))

# -------------------- Headless driver --------------------
FPS = int(os.getenv("FPS", "30"))

# -------------------- Notifications --------------------
NOTIFICATION_HISTORY = int(os.getenv("NOTIFICATION_HISTORY", "50"))   # newest kept, oldest dropped

# -------------------- Logging --------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
