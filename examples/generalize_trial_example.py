"""Example: Generalizing a Trial to an Older Target Population.

This example simulates a randomized trial whose participants are younger
than the population the results are meant for, while the treatment effect
grows with age. It assesses how representative the trial is, then
compares the sample and population treatment effect estimates across
participation models and TATE back-ends.
"""

from generalizability import assess, generalize, interpret_generalizability_index
from generalizability.data.synthetic import generate_trial_population
from shared.observability import setup_logging

COVARIATES = ["age", "female", "region"]


def main():
    """Run the trial generalization example."""
    setup_logging()

    print("=== Trial Generalization Example ===")
    print()

    study = generate_trial_population(n_trial=400, n_pop=4000, random_state=2024)
    data = study.data
    print(f"Trial rows: {(data['trial'] == 1).sum()}")
    print(f"Population rows: {(data['trial'] == 0).sum()}")
    print(f"True SATE: {study.true_sate:.3f}")
    print(f"True TATE: {study.true_tate:.3f}")
    print()

    # How similar are the trial and the population?
    assessment = assess("trial", COVARIATES, data, trim_pop=True)
    print(
        f"Generalizability index: {assessment.g_index:.3f} "
        f"({interpret_generalizability_index(assessment.g_index)})"
    )
    print(f"Population rows excluded by trimming: {assessment.n_excluded}")
    print()
    print("Covariate table:")
    print(assessment.covariate_table.round(3))
    print()
    print("Participation probabilities:")
    print(assessment.participation_summary().round(3))
    print()

    for method, selection_method in [
        ("weighting", "lr"),
        ("weighting", "rf"),
        ("weighting", "lasso"),
        ("tmle", "lr"),
    ]:
        result = generalize(
            "outcome",
            "treatment",
            "trial",
            COVARIATES,
            data,
            method=method,
            selection_method=selection_method,
            trim_pop=True,
        )
        print(
            f"--- {result.method.display_name} / {result.selection_method.display_name} ---"
        )
        print(result.results_table().round(3))
        if result.weighted_covariate_table is not None:
            print("Weighted covariate table:")
            print(result.weighted_covariate_table.round(3))
        print()


if __name__ == "__main__":
    main()
