"""Remote AI access package.

Architectural role:
    Provides configuration, transport and the describe operation used by the
    orchestrator to obtain a base description of the uploaded image.

Module split:
    - `provider_config`: environment-driven models, endpoints and defaults.
    - `client`: Gemini `generateContent` transport and response parsing.
    - `service`: `describe_image` adapter operation.
"""
