class VoiceCommandError(Exception):
  # 所有可映射为 HTTP 响应的错误
  status_code = 500
  error = "Failed to process command"

  def __init__(self, message: str = ""):
    super().__init__(message or self.error)
    self.message = message or self.error


class InvalidRequest(VoiceCommandError):
  status_code = 400
  error = "Invalid request"


class UnknownFunction(VoiceCommandError):
  error = "Unknown function"

  def __init__(self, name: str):
    super().__init__(f"Unknown function: {name}")
    self.name = name


class UpstreamModelError(VoiceCommandError):
  error = "Language model request failed"


class CalendarUnavailable(VoiceCommandError):
  error = "Calendar service unavailable"


class SynthesisUnavailable(VoiceCommandError):
  error = "Speech synthesis unavailable"
