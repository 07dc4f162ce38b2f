"""Prompt builders for the code tools."""


def code_generation_prompt(description: str, language: str = "javascript", framework: str = "vanilla") -> str:
    return (
        f"Generate {language} code for: {description}\n"
        "\n"
        "Requirements:\n"
        f"- Use {framework} framework\n"
        "- Include error handling\n"
        "- Add comments and documentation\n"
        "- Follow best practices\n"
        "- Make it production-ready\n"
        "\n"
        "Return only the code, no explanations."
    )


def file_analysis_prompt(content: str, filename: str | None, file_type: str | None) -> str:
    return (
        f"Analyze this {file_type or 'file'} ({filename}):\n"
        "\n"
        f"{content}\n"
        "\n"
        "Provide:\n"
        "1. Code quality assessment\n"
        "2. Security analysis\n"
        "3. Performance recommendations\n"
        "4. Best practices suggestions\n"
        "5. Potential improvements\n"
        "\n"
        "Be concise but thorough."
    )
