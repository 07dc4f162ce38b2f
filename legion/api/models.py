"""Request and response schemas for the HTTP surface."""

from typing import Annotated, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from legion.providers.base import ChatTurn, clean_text

# Inbound text with lone surrogates replaced; such text is echoed back in responses.
Text = Annotated[str, AfterValidator(clean_text)]


class Turn(BaseModel):
    role: Literal["system", "user", "assistant"] = "user"
    content: Text = ""

    def to_turn(self) -> ChatTurn:
        return ChatTurn(role=self.role, content=self.content)


class VibeChatBody(BaseModel):
    """Body of ``POST /api/vibe/chat``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    message: Optional[Text] = None
    messages: Optional[List[Turn]] = None
    model: Optional[Text] = None
    provider: Optional[Text] = None
    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    system_prompt: Optional[Text] = Field(default=None, alias="systemPrompt")


class VibeChatResponse(BaseModel):
    success: bool = True
    response: str
    provider: str
    model: Optional[str] = None
    source: str
    timestamp: str


class LegacyChatBody(BaseModel):
    """Body of ``POST /api/chat``."""

    model_config = ConfigDict(extra="ignore")

    message: Optional[Text] = None
    model: Text = "auto"
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)


class LegacyChatResponse(BaseModel):
    success: bool = True
    response: str
    service: str
    model: Optional[str] = None
    timestamp: str


class GenerateCodeBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: Text = ""
    language: Text = "javascript"
    framework: Text = "vanilla"


class AnalyzeFileBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: Text = ""
    filename: Optional[Text] = None
    file_type: Optional[Text] = Field(default=None, alias="type")


class ProviderSummary(BaseModel):
    name: str
    status: str
    models: List[str]
    free: bool = True


class ProvidersResponse(BaseModel):
    success: bool = True
    source: str
    providers: Dict[str, ProviderSummary]
    timestamp: str
