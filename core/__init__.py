"""
Core building blocks shared by every platform builder and converter.

- canonical_models: the platform-neutral TaptikContext and its payloads
- results: validation, compatibility, conversion and deployment results
- errors: exception taxonomy with machine-readable codes
- content_security: sensitive data, malicious content and prompt-injection scanning
- registry: builder and converter lookup tables
- file_writer: merge-policy aware deployment of generated files
- pipeline: detect -> extract -> normalize -> validate -> convert -> deploy
"""
