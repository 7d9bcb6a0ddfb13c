from fastapi import Request

from invoice_processor.core.runtime import ProcessorRuntime

def get_runtime(request: Request) -> ProcessorRuntime:
    return request.app.state.runtime
