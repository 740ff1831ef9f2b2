"""Application layer.

This layer contains *use cases* that orchestrate the pipeline and the ports to
fulfil a user intent, plus the composition root.

Rule of thumb:
UI -> application.use_cases -> pipeline/ports -> services
"""
