#!/usr/bin/env python3
#
# This script reproduces the textbook example of the optimal bushy join order algorithm (Silberschatz et al., Database
# System Concepts, Figure 13.7). Three tables are joined manually in different orders first. Afterwards, the optimizer
# determines the best order on its own.
#
# Requirements: none, apart from the bushyjoin package itself.
#

import bushyjoin as bj

# Each table is described by its number of tuples and its attributes. Attributes that two tables have in common act as
# join columns and halve the size of the join result.
t1 = bj.Relation(10, ["A", "B", "E"])
t2 = bj.Relation(20, ["B", "C", "D"])
t3 = bj.Relation(15, ["A", "B", "D"])

print("Three tables:")
for table in (t1, t2, t3):
    print("\t", table)

# Join plans can be assembled manually. Their estimated size is computed as soon as the join is created.
print("Join options:")
for plan in (bj.make_join(t3, bj.make_join(t1, t2)), bj.make_join(t1, bj.make_join(t2, t3))):
    print("\t", plan, plan.tuples)

print("Full cost of best option:")
best_subplan = bj.make_join(t1, t3)
print("\t", best_subplan, best_subplan.tuples)
best_plan = bj.make_join(best_subplan, t2)
print("\t", best_plan, best_plan.tuples)

# The optimizer finds the same plan. The memo table shows the optimal plan for each subset of the tables.
print("Using algorithm:")
memo = bj.MemoTable()
optimizer = bj.DynamicProgrammingOptimizer()
plan = optimizer.optimize({t1, t2, t3}, memo=memo)
print("\t", plan, ":", plan.tuples)
print(plan.inspect())
print(memo.as_df().to_string(index=False))
print(optimizer.statistics())
