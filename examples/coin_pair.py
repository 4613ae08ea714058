"""
Example: two binary variables that must differ.

The only valid outcomes are (0, 1) and (1, 0); maximum entropy splits
the mass evenly between them.
"""

from kktmaxent import PairwiseExclusion, SolverConfig, optimize


def main():
    result = optimize([PairwiseExclusion(0, 1)], variable_count=2, k=2,
                      config=SolverConfig(tolerance=1e-10))

    print("Joint distribution:")
    for a in range(2):
        for b in range(2):
            print(f"  Pr[x0={a}, x1={b}] = {result.joint_prob(0, a, 1, b):.6f}")

    print("\nMarginals:")
    for var in range(2):
        print(f"  P(x{var}) = {result.marginal(var).tolist()}")

    print(f"\nEntropy of marginals: {result.entropy():.6f} bits")


if __name__ == "__main__":
    main()
