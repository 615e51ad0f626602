"""ora2pg-admin - Run and supervise ora2pg Oracle to PostgreSQL migrations."""

import logging
import warnings

__version__ = "0.1.0"
__author__ = "ora2pg-admin Team"
__license__ = "Apache-2.0"

# Suppress verbose third-party library logging
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("markdown_it").setLevel(logging.WARNING)

# Suppress common warnings from third-party libraries
warnings.filterwarnings("ignore", category=DeprecationWarning, module="tqdm")
