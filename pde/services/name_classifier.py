"""Folder-name heuristics used by the scanner.

Every decision here is a table lookup on the folder name alone -- no
filesystem access.  A name is either domain-like (``example.com``), a
subdomain/service label (``api``, ``blog``, ``en``) or an ordinary folder.
Ambiguous names always resolve toward *not* creating a separate project.

The tables are module-level constants so they can be extended without touching
the predicates.
"""

# fmt: off
RECOGNIZED_TLDS: frozenset[str] = frozenset(
    {
        # Generic
        "com", "org", "net", "edu", "gov", "mil", "int",
        # Country codes
        "uk", "us", "ca", "au", "de", "fr", "jp", "cn", "in", "br", "mx", "ru",
        # New generic
        "app", "dev", "io", "ai", "tech", "digital", "online", "website", "site",
        "blog", "news", "info", "biz", "name", "pro", "coop", "museum",
        # Geographic and special
        "am", "tv", "me", "co", "ly", "be", "cc", "ws", "tk", "ml", "ga", "cf",
        # Newer extensions
        "center", "club", "space", "store", "gallery", "studio", "design",
        "agency", "company", "solutions", "services", "consulting", "group",
    }
)

SUBDOMAIN_PATTERNS: frozenset[str] = frozenset(
    {
        # Services
        "api", "www", "app", "admin", "dashboard", "portal", "client",
        "blog", "news", "docs", "help", "support", "forum",
        "shop", "store", "cart", "checkout", "payment",
        "cdn", "static", "assets", "media", "files",
        "dev", "staging", "test", "beta", "alpha", "demo",
        "mail", "email", "webmail", "ftp", "ssh",
        "mobile", "m", "wap",
        # Regions and languages
        "us", "uk", "eu", "asia", "au",
        "en", "fr", "de", "es", "it", "pt", "ru", "zh", "ja",
        # Branded services
        "gaming", "vanlife", "democracy", "merch", "learning", "community",
    }
)

# Folders that live inside a project and must never become projects themselves.
# Takes precedence over SUBDOMAIN_PATTERNS (``static``, ``docs``, ``test``, ...).
PROJECT_FOLDER_EXCLUSIONS: frozenset[str] = frozenset(
    {
        "src", "source", "lib", "libs", "components", "comp", "ui",
        "build", "dist", "output", "target", "bin",
        "public", "static", "assets", "images", "img", "css", "js", "fonts",
        "node_modules", ".git", ".vscode", ".idea",
        "test", "tests", "__tests__", "spec", "specs",
        "docs", "documentation", "readme",
        "config", "configs", "settings",
        "utils", "utilities", "helpers", "common",
        "types", "interfaces", "models", "schemas",
        "pages", "views", "templates", "layouts",
        "styles", "scss", "sass", "less",
        "scripts", "tools", "deploy", "deployment",
        "article", "articles",
    }
)

# Substrings that mark a second-level folder as a project root rather than a
# container of projects.  Entries ending in "-" only match as a prefix.
PROJECT_NAME_PATTERNS: tuple[str, ...] = (
    # Application shapes
    "portfolio", "website", "app", "api", "frontend", "backend", "client", "server",
    "dashboard", "admin", "cms", "blog", "shop", "store", "ecommerce",
    # Technologies
    "react", "vue", "angular", "svelte", "next", "nuxt", "gatsby", "astro",
    "node", "deno", "express", "fastify", "nest",
    # Project kinds
    "landing", "docs", "documentation", "guide", "tutorial", "demo", "example",
    "prototype", "poc", "mvp", "beta", "alpha", "test", "dev", "staging",
    # Personal prefixes
    "my-", "personal-", "own-", "self-",
    # Work prefixes
    "client-", "work-", "project-", "freelance-",
)
# fmt: on


def is_domain_like(name: str) -> bool:
    """Return ``True`` when *name* looks like ``something.<tld>``.

    Args:
        name: Folder name to classify.

    Returns:
        ``True`` if the name contains a dot and the text after the last dot is
        a recognised top-level domain (compared case-insensitively).
    """
    if "." not in name:
        return False
    tld = name.rsplit(".", 1)[1].lower()
    return tld in RECOGNIZED_TLDS


def is_subdomain_like(name: str) -> bool:
    """Return ``True`` when *name* looks like a subdomain project inside a domain folder.

    Decision order: project-internal folder names are rejected first, dotted
    names are delegated to :func:`is_domain_like`, then known service/region
    labels are accepted.  Anything else is treated as an ordinary folder.

    Args:
        name: Folder name to classify.

    Returns:
        ``True`` if the folder should be treated as a sibling project.
    """
    lower_name = name.lower()

    if lower_name in PROJECT_FOLDER_EXCLUSIONS:
        return False

    if "." in name:
        return is_domain_like(name)

    return lower_name in SUBDOMAIN_PATTERNS


def looks_like_project_folder(name: str) -> bool:
    """Return ``True`` when a non-domain folder name reads like a single project.

    Args:
        name: Second-level folder name.

    Returns:
        ``True`` if any project pattern matches (prefix match for patterns
        ending in ``-``, substring match otherwise).
    """
    lower_name = name.lower()
    for pattern in PROJECT_NAME_PATTERNS:
        if pattern.endswith("-"):
            if lower_name.startswith(pattern):
                return True
        elif pattern in lower_name:
            return True
    return False
