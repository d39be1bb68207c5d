"""
frequence_pipeline.pipelines — Collection orchestrators.

Each module exports a run() async function. The batch collector returns
a CollectionResult; the step collectors return a StepResult whose
to_response() is the JSON body of the matching HTTP endpoint.

    from frequence_pipeline.pipelines import batch_collector, biodiversity_step

    result = await biodiversity_step.run(StepCollectionRequest(...))
"""
