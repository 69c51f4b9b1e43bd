from .groupconfig import (
    Config as Config,
)
from .groupconfig import (
    ExtractionConfig as ExtractionConfig,
)
from .groupconfig import (
    InteractionConfig as InteractionConfig,
)
from .groupconfig import (
    ReportConfig as ReportConfig,
)
from .groupconfig import (
    SessionConfig as SessionConfig,
)
from .groupconfig import (
    coerce_nested as coerce_nested,
)
from .groupconfig import (
    load_config as load_config,
)
from .grouperrors import (
    GroupScraperError as GroupScraperError,
)
from .grouperrors import (
    InputSourceError as InputSourceError,
)
from .grouperrors import (
    PageUnreachableError as PageUnreachableError,
)
from .grouperrors import (
    SessionStartError as SessionStartError,
)
from .groupextract import (
    FIELD_EXTRACTORS as FIELD_EXTRACTORS,
)
from .groupextract import (
    RenderedPage as RenderedPage,
)
from .groupextract import (
    convert_followers as convert_followers,
)
from .groupreport import (
    read_urls as read_urls,
)
from .groupreport import (
    write_failed_links as write_failed_links,
)
from .groupreport import (
    write_report as write_report,
)
from .groupscraper import (
    BatchResult as BatchResult,
)
from .groupscraper import (
    GroupRecord as GroupRecord,
)
from .groupscraper import (
    GroupScraper as GroupScraper,
)
from .groupscraper import (
    InteractionSequencer as InteractionSequencer,
)
from .groupscraper import (
    analyze_page as analyze_page,
)
from .groupscraper import (
    classify_activity as classify_activity,
)
from .groupscraper import (
    normalize_about_url as normalize_about_url,
)
from .groupscraper import (
    process_urls as process_urls,
)
from .groupsession import (
    BrowserSession as BrowserSession,
)
from .groupsession import (
    open_session as open_session,
)
