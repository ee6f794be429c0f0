import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Round phase timers (milliseconds)
    BETTING_DURATION_MS = int(os.environ.get('BETTING_DURATION_MS', '18000'))
    ROLLING_DURATION_MS = int(os.environ.get('ROLLING_DURATION_MS', '2500'))
    RESULT_DURATION_MS = int(os.environ.get('RESULT_DURATION_MS', '6000'))
    # Scheduler resolution for each room loop
    TICK_INTERVAL_MS = int(os.environ.get('TICK_INTERVAL_MS', '60'))
    # Wallet and betting limits
    STARTING_BALANCE = int(os.environ.get('STARTING_BALANCE', '1000'))
    MAX_BET = int(os.environ.get('MAX_BET', '5000'))
    # Snapshot sizes
    HISTORY_LIMIT = int(os.environ.get('HISTORY_LIMIT', '20'))
    LEADERBOARD_LIMIT = int(os.environ.get('LEADERBOARD_LIMIT', '20'))
    ROOM_LIST_LIMIT = int(os.environ.get('ROOM_LIST_LIMIT', '50'))
    # Optional: drop rooms with no players after this many seconds. 0 disables.
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '0'))
    ROOM_REAP_INTERVAL_SEC = int(os.environ.get('ROOM_REAP_INTERVAL_SEC', '5'))
    # Optional: unbiased dice via rejection sampling instead of plain modulo
    DICE_REJECTION_SAMPLING = os.environ.get('DICE_REJECTION_SAMPLING', '0') == '1'
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o.strip()
    ]
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
