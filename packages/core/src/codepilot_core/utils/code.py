from __future__ import annotations

SUPPORTED_LANGUAGES: dict[str, str] = {
    "javascript": "JavaScript",
    "python": "Python",
    "typescript": "TypeScript",
    "java": "Java",
    "csharp": "C#",
    "go": "Go",
    "rust": "Rust",
    "php": "PHP",
    "ruby": "Ruby",
    "cpp": "C++",
    "c": "C",
    "swift": "Swift",
    "kotlin": "Kotlin",
    "scala": "Scala",
    "html": "HTML",
    "css": "CSS",
    "sql": "SQL",
}

EXTENSION_LANGUAGES: dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascript",
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".cpp": "cpp",
    ".cxx": "cpp",
    ".cc": "cpp",
    ".c": "c",
    ".h": "c",
    ".swift": "swift",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".scala": "scala",
    ".html": "html",
    ".htm": "html",
    ".css": "css",
    ".sql": "sql",
}

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
}


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def language_from_filename(file_name: str) -> str | None:
    """Guess the language id from a file extension; None if unknown."""
    name = file_name.rsplit("/", 1)[-1].lower()
    if "." not in name:
        return None
    return EXTENSION_LANGUAGES.get("." + name.rsplit(".", 1)[-1])


def language_label(language: str) -> str:
    """Human-readable name for a language id ("csharp" → "C#")."""
    if language in SUPPORTED_LANGUAGES:
        return SUPPORTED_LANGUAGES[language]
    return language[:1].upper() + language[1:]
