"""Canned local text used when no provider answers."""

import hashlib

from legion.providers.base import clean_text

LOCAL_RESPONSE_TEMPLATES = (
    'I understand you\'re asking about: "{message}". While AI services are connecting, I can provide basic assistance.',
    'Regarding "{message}", I\'m processing your request locally. AI services will enhance responses once connected.',
    'Your query about "{message}" is noted. Local processing active, enhanced AI features loading.',
    'Processing "{message}" locally. Full AI capabilities will be available shortly.',
)


def local_response(message: str) -> str:
    """Deterministic stand-in reply; the same message always maps to the same template."""
    message = clean_text(message)
    digest = hashlib.sha256(message.encode("utf-8")).digest()
    template = LOCAL_RESPONSE_TEMPLATES[digest[0] % len(LOCAL_RESPONSE_TEMPLATES)]
    return template.format(message=message)


def code_fallback(description: str | None, language: str | None) -> str:
    description = clean_text(description or "unspecified feature")
    language = clean_text(language or "javascript")
    return (
        f"// {language} code for: {description}\n"
        "// Generated by GRUDA Legion local system\n"
        f"// TODO: Implement {description}\n"
        "\n"
        "function main() {\n"
        f"    console.log('{description} implementation needed');\n"
        "    // Add your implementation here\n"
        "}\n"
        "\n"
        "main();"
    )


def analysis_fallback(filename: str | None, file_type: str | None) -> str:
    return clean_text(f"Basic analysis for {filename}: File appears to be valid {file_type} code.")
