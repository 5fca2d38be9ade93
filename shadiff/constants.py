"""Classification tables — denylists, folder conventions, and the primitive catalog.

All tables are immutable (tuples / frozensets). Components receive them as
constructor defaults and never mutate them.
"""

# Known shadcn/ui primitives, obtainable by name from the registry ecosystem
SHADCN_COMPONENTS = frozenset({
    "accordion", "alert", "alert-dialog", "aspect-ratio", "avatar",
    "badge", "breadcrumb", "button", "calendar", "card",
    "carousel", "chart", "checkbox", "collapsible", "combobox",
    "command", "context-menu", "data-table", "date-picker", "dialog",
    "drawer", "dropdown-menu", "form", "hover-card", "input",
    "input-otp", "label", "menubar", "navigation-menu", "pagination",
    "popover", "progress", "radio-group", "resizable", "scroll-area",
    "select", "separator", "sheet", "sidebar", "skeleton",
    "slider", "sonner", "switch", "table", "tabs",
    "textarea", "toggle", "toggle-group", "tooltip",
})

# Never shipped, whatever the include patterns say
EXCLUDED_FILES = frozenset({
    "registry.json",
    "project-registry.json",
    "shadcn-registry.config.json",
    "shadcn_registry_cli.js",
    "shadcn_registry_cli.ts",
    "next-env.d.ts",
    ".env",
    ".env.local",
    ".env.production",
    ".env.development",
})

EXCLUDED_EXTENSIONS = frozenset({
    ".md", ".mjs", ".json", ".d.ts", ".lock", ".yaml", ".yml", ".ico",
})

# Substrings of the file name (without extension) that mark build-tool config
CONFIG_FILE_PATTERNS = (
    "eslint.config",
    "next.config",
    "postcss.config",
    "tailwind.config",
    "vite.config",
    "webpack.config",
    "rollup.config",
    "babel.config",
    "jest.config",
    "vitest.config",
    "components.json",
)

EXCLUDED_DEPENDENCIES = frozenset({
    "next",
    "react",
    "react-dom",
    "tailwind-merge",
    "tw-animate-css",
    "class-variance-authority",
    "clsx",
})

EXCLUDED_DEV_DEPENDENCIES = frozenset({
    "@eslint/eslintrc",
    "@tailwindcss/postcss",
    "@types/node",
    "@types/react",
    "@types/react-dom",
    "eslint",
    "eslint-config-next",
    "tailwindcss",
    "typescript",
})

COMPONENT_FOLDERS = (
    "features", "modules", "sections", "layouts", "widgets",
    "containers", "views", "pages", "screens", "templates",
)

LIB_FOLDERS = (
    "helpers", "utilities", "shared", "common", "core",
    "tools", "validators", "schemas", "middleware", "plugins",
)

CONFIG_FILES = frozenset({
    "package.json",
    "tsconfig.json",
    "next.config.ts",
    "next.config.js",
    "tailwind.config.ts",
    "tailwind.config.js",
    "components.json",
    "eslint.config.js",
    "eslint.config.mjs",
    "postcss.config.js",
    "postcss.config.mjs",
    "vite.config.ts",
    "webpack.config.js",
})

NEXTJS_CONFIG_FILES = ("next.config.js", "next.config.mjs", "next.config.ts")

PACKAGE_MANIFEST = "package.json"

# ── Remote hosts ─────────────────────────────────────────────────────

GITHUB_HOSTS = frozenset({"github.com", "www.github.com"})
GITLAB_HOSTS = frozenset({"gitlab.com", "www.gitlab.com"})
RAW_HOST_MARKERS = ("raw.githubusercontent.com", "cdn.jsdelivr.net", "unpkg.com")

CLONABLE_HOSTS = frozenset({
    "github.com", "www.github.com",
    "gitlab.com", "www.gitlab.com",
    "bitbucket.org", "www.bitbucket.org",
    "codeberg.org",
    "git.sr.ht",
})

GITHUB_API_BASE = "https://api.github.com"
GITLAB_API_BASE = "https://gitlab.com/api/v4"

REQUEST_TIMEOUT_SECONDS = 30.0
GITHUB_BATCH_SIZE = 10

# Directory names never collected from a fresh clone
CLONE_SKIP_DIRS = frozenset({"node_modules"})

# ── Defaults ─────────────────────────────────────────────────────────

DEFAULT_ROOT_DIR = "."
DEFAULT_OUTPUT_FILE = "registry.json"
DEFAULT_AUTHOR = "Project Author"
DEFAULT_NEXTJS_STRATEGY = "preserve"
DEFAULT_BRANCH = "main"
NEXTJS_STRATEGIES = ("preserve", "overwrite")

DEFAULT_INCLUDE_PATTERNS = (".tsx", ".ts", ".jsx", ".js", ".css", ".svg")
DEFAULT_EXCLUDE_PATTERNS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "pnpm-lock.yaml",
    "yarn.lock",
    "package-lock.json",
)

CONFIG_FILE = "shadcn-registry.config.json"
