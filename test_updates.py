import numpy as np
import pytest

from pqmc import PQMC, seed, validate_operator_string
from pqmc.errors import ExhaustedSampling
from pqmc.lattice import square_lattice_couplings
from pqmc.probability import build_probability_tables
from pqmc.updates import (
    COIN_ALWAYS,
    COIN_NEVER,
    LOWER1,
    OP_BOND,
    OP_CONST,
    OP_FLIP,
    UPPER1,
    build_graph,
    diagonal_update,
    new_graph,
)


def make_sim(L=2, J=1.0, h=1.0, m=40, seed_value=7, periodic=False):
    seed(seed_value)
    N = L * L
    return PQMC(square_lattice_couplings(L, J=J, periodic=periodic), np.full(N, h), m)


def random_sign_couplings(L, seed_value):
    rng = np.random.default_rng(seed_value)
    J = square_lattice_couplings(L, J=1.0)
    signs = np.triu(rng.choice([-1.0, 1.0], size=J.shape), 1)
    return J * (signs + signs.T)


def test_links_are_symmetric_and_complete():
    sim = make_sim()
    for _ in range(20):
        sim.mc_step()

    M, N = sim.M, sim.N
    lv, ll = sim.link_vertex, sim.link_leg
    for v in range(M + 2 * N):
        for d in range(4):
            w = lv[v, d]
            if w < 0:
                continue
            assert lv[w, ll[v, d]] == v
            assert ll[w, ll[v, d]] == d

    for p in range(M):
        used = [0, 1, 2, 3] if sim.op_type[p] == OP_BOND else [0, 2]
        assert all(lv[p, d] >= 0 for d in used)
    for s in range(N):
        assert lv[M + s, UPPER1] >= 0
        assert lv[M + N + s, LOWER1] >= 0


def test_leg_set_holds_only_field_legs():
    sim = make_sim()
    sim.mc_step()
    n_const, n_flip, n_bond, _ = sim.diagonal_step()
    assert n_const + n_flip + n_bond == sim.M
    assert sim.n_legs == 2 * (n_const + n_flip)

    legs = sim.legs[:sim.n_legs]
    assert np.all(sim.op_type[legs[:, 0]] != OP_BOND)
    assert set(legs[:, 1]) == {LOWER1, UPPER1}


def test_standalone_graph_matches_fused_graph():
    sim = make_sim(J=-1.0)
    sim.mc_step()

    # Cluster flips only swap field types, the topology is unchanged
    lv, ll, legs, _, _ = new_graph(sim.M, sim.N)
    n_legs = build_graph(sim.op_type, sim.op_site1, sim.op_site2, sim.N, lv, ll, legs)
    assert n_legs == sim.n_legs
    assert np.array_equal(lv, sim.link_vertex)
    assert np.array_equal(ll, sim.link_leg)
    assert np.array_equal(legs[:n_legs], sim.legs[:n_legs])


@pytest.mark.parametrize("J", [1.0, -1.0])
def test_bond_vertices_flip_coherently(J):
    sim = make_sim(J=J, h=0.5)
    for _ in range(30):
        sim.mc_step()
        for p in np.flatnonzero(sim.op_type == OP_BOND):
            assert len(set(sim.leg_cluster[p])) == 1


def test_every_field_leg_is_assigned_a_cluster():
    sim = make_sim()
    for _ in range(10):
        sim.mc_step()
        legs = sim.legs[:sim.n_legs]
        labels = sim.leg_cluster[legs[:, 0], legs[:, 1]]
        assert np.all(labels >= 0)
        assert labels.max() == sim.n_clusters - 1


def test_boundary_flips_match_flipped_clusters():
    sim = make_sim(h=0.7)
    for _ in range(25):
        sim.diagonal_step()
        before = sim.spins.copy()
        sim.cluster_step()

        changed = before != sim.spins
        labels = sim.leg_cluster[sim.M:sim.M + sim.N, UPPER1]
        expected = np.array([c >= 0 and sim.cluster_flip[c] == 1 for c in labels])
        assert np.array_equal(changed, expected)

        # Spin parity changes with the number of boundary legs owned by
        # flipped clusters, counted cluster by cluster
        touches = np.bincount(labels[labels >= 0], minlength=sim.n_clusters)
        flipped = sim.cluster_flip[:sim.n_clusters] == 1
        parity_change = (int(sim.spins.sum()) - int(before.sum())) % 2
        assert parity_change == touches[flipped].sum() % 2


def test_cluster_update_without_flips_is_identity():
    sim = make_sim()
    for _ in range(10):
        sim.mc_step()

    sim.diagonal_step()
    ops = (sim.op_type.copy(), sim.op_site1.copy(), sim.op_site2.copy())
    spins = sim.spins.copy()
    sim.cluster_step(coin=COIN_NEVER)

    assert np.array_equal(sim.op_type, ops[0])
    assert np.array_equal(sim.op_site1, ops[1])
    assert np.array_equal(sim.op_site2, ops[2])
    assert np.array_equal(sim.spins, spins)


def test_cluster_update_flipping_everything():
    sim = make_sim()
    for _ in range(10):
        sim.mc_step()

    sim.diagonal_step()
    op_type = sim.op_type.copy()
    spins = sim.spins.copy()
    sim.cluster_step(coin=COIN_ALWAYS)

    # Both legs of every field vertex flip, so no type changes
    assert np.array_equal(sim.op_type, op_type)
    reached = sim.leg_cluster[sim.M:sim.M + sim.N, UPPER1] >= 0
    assert np.array_equal(sim.spins != spins, reached)


@pytest.mark.parametrize("J", [1.0, -1.0, None])
def test_sweeps_keep_string_valid(J):
    L = 3
    Jmat = random_sign_couplings(L, 11) if J is None else square_lattice_couplings(L, J=J)
    seed(3)
    sim = PQMC(Jmat, np.full(L * L, 0.8), 60)
    for _ in range(50):
        sim.mc_step()
        validate_operator_string(sim.op_type, sim.op_site1, sim.op_site2, sim.spins, sim.J)


def test_short_string_links_every_site():
    # 2m < N: most sites carry no operator at all
    sim = make_sim(L=3, m=1)
    for _ in range(20):
        sim.mc_step()

        M, N = sim.M, sim.N
        touched = set(sim.op_site1) | set(sim.op_site2[sim.op_site2 >= 0])
        for s in range(N):
            bottom, top = M + s, M + N + s
            assert sim.link_vertex[bottom, UPPER1] >= 0
            assert sim.link_vertex[top, LOWER1] >= 0
            if s not in touched:
                assert sim.link_vertex[bottom, UPPER1] == top
                assert sim.link_leg[bottom, UPPER1] == LOWER1


def af_pair():
    J = np.array([[0.0, 1.0], [1.0, 0.0]])
    h = np.zeros(2)
    cum_site, cum_pair = build_probability_tables(J, h)
    return J, cum_site, cum_pair


def test_af_pair_inserts_only_valid_bonds():
    seed(9)
    J, cum_site, cum_pair = af_pair()
    M = 16
    op_type = np.full(M, OP_CONST, dtype=np.int8)
    op_site1 = np.zeros(M, dtype=np.int32)
    op_site2 = np.full(M, -1, dtype=np.int32)
    spins = np.array([0, 1], dtype=np.int8)
    lv, ll, legs, _, _ = new_graph(M, 2)

    n_const, n_flip, n_bond, n_legs, _ = diagonal_update(
        op_type, op_site1, op_site2, spins, J, cum_site, cum_pair, lv, ll, legs, 1000)

    assert (n_const, n_flip, n_bond, n_legs) == (0, 0, M, 0)
    assert np.all(op_type == OP_BOND)
    validate_operator_string(op_type, op_site1, op_site2, spins, J)


def test_af_pair_on_aligned_spins_exhausts_sampling():
    seed(9)
    J, cum_site, cum_pair = af_pair()
    M = 4
    op_type = np.full(M, OP_CONST, dtype=np.int8)
    op_site1 = np.zeros(M, dtype=np.int32)
    op_site2 = np.full(M, -1, dtype=np.int32)
    spins = np.array([1, 1], dtype=np.int8)
    lv, ll, legs, _, _ = new_graph(M, 2)

    with pytest.raises(ExhaustedSampling):
        diagonal_update(op_type, op_site1, op_site2, spins, J, cum_site, cum_pair,
                        lv, ll, legs, 1000)


def test_flip_operators_survive_the_diagonal_update():
    sim = make_sim(h=2.0)
    for _ in range(10):
        sim.mc_step()
    flips = sim.op_type == OP_FLIP
    sites = sim.op_site1[flips].copy()

    sim.diagonal_step()
    assert np.array_equal(sim.op_type == OP_FLIP, flips)
    assert np.array_equal(sim.op_site1[flips], sites)
