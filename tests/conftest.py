import os
import tempfile

# recovery_assist.main configures file logging on import; keep it out of the checkout.
os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="recovery-assist-logs-"))
