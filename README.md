# mitosha

Building blocks for data that lives in one flat region of memory:

- `mitosha.linkedlist` is a doubly linked list whose nodes carry values. It supports insertion before or after a node, push to either end, remove, replace, swap and a stable sort.
- `mitosha.pool` is a first-fit allocator laid over a writable byte buffer. Blocks are addressed by offset, and freed neighbours are merged back together. All of its state lives in the buffer, so any process that maps the same memory can attach to it.
- `mitosha.shm` provides named shared memory segments. Each segment has a counting lock that works across processes. This module needs a POSIX system.

## Install

```
pip install mitosha
```

## Linked list

```python
from mitosha.linkedlist import ListNode, LinkedList

lst = LinkedList()
a, b, c = ListNode(5), ListNode(1), ListNode(3)
lst.push_back(a)            # 5
lst.insert_after(a, b)      # 5 1
lst.insert_before(b, c)     # 5 3 1
lst.sort(lambda x, y: x - y)
print([n.value for n in lst])               # [1, 3, 5]
print(lst.front().value, lst.back().value)  # 1 5
print(lst.lookup(3, lambda v, k: v - k))    # ListNode(3)
```

Comparison functions receive node values and return a negative number, zero or a positive number. `lookup` returns the first node whose value compares equal to the key, or `None`. `ListNode.first()` and `ListNode.last()` walk to the ends of the chain a node belongs to.

## Memory pool

```python
from mitosha.pool import MemoryPool, calc_required_size

buf = bytearray(calc_required_size(16, 8))
pool = MemoryPool.format(buf)
off = pool.alloc(10)
pool.view(off, 10)[:5] = b"hello"
print(pool.used(), pool.free_space(), pool.utilization())
off = pool.realloc(off, 40)   # growing may move the block; contents are kept
pool.free(off)
print(pool.dump())
```

- `calc_required_size(itemsize, nitem)` gives the buffer size needed for `nitem` blocks of `itemsize` bytes.
- `size_stuff(total)` gives the bytes of a buffer of that size that are not usable payload.
- `MemoryPool.attach(buf)` reopens a buffer that was formatted earlier. It raises `PoolError` if the buffer holds no pool.
- `zalloc` allocates zeroed memory. `memdup(data)` copies bytes into a new block and returns `None` for empty data.
- `reset()` drops every block. `total_size()`, `total_capacity()`, `used()`, `free_space()` and `utilization()` report on the pool.
- `alloc` raises `PoolError` when no free block is large enough. `free` and `realloc` raise it for offsets that are not blocks of the pool.

## Shared memory

```python
from mitosha.shm import SharedSegment, unlink

with SharedSegment.create("demo", 4096) as seg:
    seg.lock()
    seg.buffer[:5] = b"hello"
    seg.unlock()

with SharedSegment.open("demo") as seg:
    print(seg.name, seg.size, bytes(seg.buffer[:5]))

unlink("demo")
```

`create` makes the segment, or reuses and resizes one that already exists. `open` attaches to an existing segment at its current size. `trylock()` returns whether the lock was taken. `unlock_force()` makes the lock available again if a holder went away without releasing it. `close()` unmaps the segment, and the name stays until `unlink(name)` is called. Failures raise `SharedMemoryError`, which is a subclass of `OSError`.

## What it does not include

The package has no balanced search tree. Ordered lookup, lower and upper bounds, and sorted iteration over keys must come from elsewhere. The linked list only offers a linear `lookup` and a full `sort`.