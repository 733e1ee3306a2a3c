import sys

from campaign_governance.cli import main

sys.exit(main())
